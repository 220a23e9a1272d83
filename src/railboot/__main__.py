from railboot.cli import cli

cli()
