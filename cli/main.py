# cli/main.py
import click
from .commands.author import author
from .commands.work import work
from .commands.edition import edition
from .commands.profile import profile
from .utils import setup_logging


@click.group()
@click.option('--verbose/--no-verbose', default=False, help='Show debug logging')
def cli(verbose: bool):
    """Reading Catalog CLI"""
    setup_logging(verbose)


cli.add_command(author)
cli.add_command(work)
cli.add_command(edition)
cli.add_command(profile)


def main():
    """Entry point for the CLI"""
    cli()


if __name__ == '__main__':
    main()
