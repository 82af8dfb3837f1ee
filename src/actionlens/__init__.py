"""actionlens - find Next.js server actions and the call sites that reach them."""

__version__ = "0.1.0"
