from actionlens.cli.main import cli

cli()
