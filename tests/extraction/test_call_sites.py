"""Tests for extraction/calls.py.

Covers:
- Markup entry attributes
- Direct calls, callee unwrapping and qualifiers
- Deferred-execution wrappers and hook arguments
- Span deduplication and unsupported call shapes
"""

from __future__ import annotations

import pytest

from actionlens.extraction.calls import extract_call_sites
from actionlens.extraction.models import (
    AttributeEntry,
    CandidateKind,
    DirectCall,
    HookArgument,
    WrappedCall,
)


def texts(source: str, file_name: str = "page.tsx") -> list[str]:
    return [source[c.start : c.end] for c in extract_call_sites(source, file_name)]


class TestEntryAttributes:
    def test_given_form_action_then_attribute_entry_spans_expression(self) -> None:
        text = "const el = <form action={save}><button formAction={other}>go</button></form>;"

        candidates = extract_call_sites(text, "page.tsx")

        entries = [c for c in candidates if isinstance(c, AttributeEntry)]
        assert [text[c.start : c.end] for c in entries] == ["save", "other"]
        assert [c.kind for c in entries] == [
            CandidateKind.ENTRY_ACTION,
            CandidateKind.ENTRY_FORM_ACTION,
        ]
        assert entries[0].callee_name is None

    def test_given_string_action_then_no_candidate(self) -> None:
        assert extract_call_sites('const el = <form action="/api/submit" />;', "page.tsx") == []

    def test_given_inline_async_action_then_whole_function_is_entry(self) -> None:
        text = "const el = <form action={async () => { 'use server'; }} />;"

        [entry] = extract_call_sites(text, "page.tsx")

        assert isinstance(entry, AttributeEntry)
        assert text[entry.start : entry.end] == "async () => { 'use server'; }"

    def test_given_other_attribute_then_ignored(self) -> None:
        assert extract_call_sites("const el = <form onSubmit={handle} />;", "page.tsx") == []


class TestDirectCalls:
    def test_given_plain_call_then_span_from_identifier_to_call_end(self) -> None:
        text = "await save(formData, 1);"

        [call] = extract_call_sites(text, "a.ts")

        assert isinstance(call, DirectCall)
        assert text[call.start : call.end] == "save(formData, 1)"
        assert call.callee_name == "save"
        assert call.qualifier_name is None

    def test_given_member_call_then_rightmost_name_and_qualifier(self) -> None:
        text = "actions.submit();"

        [call] = extract_call_sites(text, "a.ts")

        assert call.callee_name == "submit"
        assert call.qualifier_name == "actions"
        assert text[call.start : call.end] == "submit()"

    def test_given_multi_level_member_then_no_qualifier(self) -> None:
        [call] = extract_call_sites("actions.group.submit();", "a.ts")

        assert call.callee_name == "submit"
        assert call.qualifier_name is None

    def test_given_optional_chaining_then_still_candidate(self) -> None:
        [call] = extract_call_sites("obj?.run?.();", "a.ts")

        assert call.callee_name == "run"
        assert call.qualifier_name == "obj"

    def test_given_wrapped_callee_then_unwrapped(self) -> None:
        text = "(((id as any))!)();"

        [call] = extract_call_sites(text, "wrap.ts")

        assert call.callee_name == "id"
        assert text[call.start : call.end] == "id as any))!)()"

    def test_given_satisfies_and_angle_cast_then_unwrapped(self) -> None:
        calls = extract_call_sites("(fn satisfies Handler)(); (<any>other)();", "a.ts")

        assert [c.callee_name for c in calls] == ["fn", "other"]

    @pytest.mark.parametrize(
        "text",
        [
            "obj['run']();",
            "sql`select 1`;",
            "import('./x');",
            "class A extends B { constructor() { super(); } }",
            "(() => 1)();",
            "getHandler()();",
        ],
    )
    def test_given_unsupported_callee_then_no_candidate_for_it(self, text: str) -> None:
        names = [c.callee_name for c in extract_call_sites(text, "a.ts")]

        assert names in ([], ["getHandler"])

    def test_given_nested_calls_then_outer_first(self) -> None:
        assert [c.callee_name for c in extract_call_sites("outer(inner());", "a.ts")] == [
            "outer",
            "inner",
        ]


class TestWrappers:
    def test_given_start_transition_then_inner_call_is_wrapped(self) -> None:
        text = "startTransition(() => someAction('x'));"

        candidates = extract_call_sites(text, "comp.tsx")

        assert [c.kind for c in candidates] == [CandidateKind.DIRECT_CALL, CandidateKind.WRAPPED_CALL]
        wrapped = candidates[1]
        assert isinstance(wrapped, WrappedCall)
        assert wrapped.wrapper == "startTransition"
        assert text[wrapped.start : wrapped.end] == "someAction('x')"

    def test_given_async_block_callback_then_awaited_call_wrapped(self) -> None:
        text = "startTransition(async () => {\n  await doThing('z');\n});"

        kinds = {c.callee_name: c.kind for c in extract_call_sites(text, "a.tsx")}

        assert kinds["doThing"] is CandidateKind.WRAPPED_CALL

    def test_given_member_wrapper_then_detected(self) -> None:
        text = "React.startTransition(() => api.run());"

        wrapped = [c for c in extract_call_sites(text, "a.tsx") if isinstance(c, WrappedCall)]

        assert [(c.callee_name, c.qualifier_name) for c in wrapped] == [("run", "api")]

    def test_given_identifier_argument_then_no_wrapped_calls(self) -> None:
        candidates = extract_call_sites("startTransition(run);", "a.tsx")

        assert [c.kind for c in candidates] == [CandidateKind.DIRECT_CALL]


class TestHookArguments:
    @pytest.mark.parametrize("hook", ["useActionState", "useFormState"])
    def test_given_hook_with_identifier_then_hook_argument(self, hook: str) -> None:
        text = f"const [s, run] = {hook}(someAction, null);"

        candidates = extract_call_sites(text, "a.tsx")

        hook_args = [c for c in candidates if isinstance(c, HookArgument)]
        assert len(hook_args) == 1
        assert hook_args[0].hook == hook
        assert hook_args[0].callee_name == "someAction"
        assert text[hook_args[0].start : hook_args[0].end] == "someAction"

    def test_given_hook_with_inline_function_then_no_hook_argument(self) -> None:
        candidates = extract_call_sites("useActionState(async () => null, null);", "a.tsx")

        assert not any(isinstance(c, HookArgument) for c in candidates)


class TestDeduplication:
    def test_given_same_span_found_twice_then_reported_once(self) -> None:
        """A call inside a wrapper is also a direct call; the first discovery wins."""
        text = "startTransition(() => save());"

        spans = [(c.start, c.end) for c in extract_call_sites(text, "a.tsx")]

        assert len(spans) == len(set(spans)) == 2

    def test_deterministic(self) -> None:
        text = "import { a } from './a';\na(); startTransition(() => a());\n"

        assert extract_call_sites(text, "a.tsx") == extract_call_sites(text, "a.tsx")

    def test_given_malformed_source_then_no_exception(self) -> None:
        assert isinstance(extract_call_sites("save(1, <form action={", "a.tsx"), list)
