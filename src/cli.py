#!/usr/bin/env python3
"""
CLI for mail dispatch.
"""

import logging

import click
from importlib.metadata import version
from commands import mail
from settings import DEBUG


@click.group()
@click.version_option(version=version("mail-dispatch"))
@click.option('--verbose', is_flag=True, help='Log debug output of the mail system')
def cli(verbose):
    """Mail Dispatch CLI - Send templated mails and inspect delivery logs."""
    logging.basicConfig(
        level=logging.DEBUG if (verbose or DEBUG) else logging.INFO,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )


# Register command groups
cli.add_command(mail.mail)


if __name__ == "__main__":
    cli()
