"""
Mail commands.
"""

import click
from datetime import datetime
from db import MailStatus
from mail_dispatch.errors import HandledMailError
from mail_dispatch.mail_log import DatabaseMailLog
from mail_dispatch.renderer import MailRenderer, RendererError
from mail_dispatch.service import MailService


def _print_report(report):
    if report.success:
        click.echo(click.style(f"✓ Mail sent successfully (Message-ID: {report.message_id})", fg="green"))
    else:
        click.echo(click.style(f"✗ Mail failed: {report.error}", fg="red"))


@click.group()
def mail():
    """Send mails and inspect delivery logs."""
    pass


@mail.command()
@click.option('--recipient', '-r', required=True, help='Recipient mail address')
@click.option('--name', '-n', help='Recipient name')
@click.option('--subject', '-s', required=True, help='Mail subject')
@click.option('--message', '-m', required=True, help='Mail message')
@click.option('--html', is_flag=True, help='Also send the message as HTML part')
@click.option('--sender', help='Sender address (defaults to the technical sender)')
def send(recipient, name, subject, message, html, sender):
    """
    Send a simple mail.

    Example:
        mail-dispatch mail send -r user@example.com -s "Test" -m "Hello World"
        mail-dispatch mail send -r user@example.com -s "Test" -m "<h1>Hello</h1>" --html
    """
    with MailService(logs=[DatabaseMailLog()]) as service:
        try:
            click.echo(f"Sending mail to {recipient}...")

            builder = service.create_email() \
                .to(recipient, name) \
                .from_(sender) \
                .subject(subject) \
                .text_content(message)
            if html:
                builder.html_content(message)

            _print_report(builder.send().result())

        except HandledMailError as e:
            click.echo(click.style(f"Error: {e}", fg="red"))


@mail.command(name='send-template')
@click.option('--template', '-t', required=True, help='Mail template key (from mail_templates.json)')
@click.option('--recipient', '-r', required=True, help='Recipient mail address')
@click.option('--name', '-n', help='Recipient name')
@click.option('--lang', '-l', help='Language of the mail')
@click.option('--var', '-v', multiple=True, help='Template variables (key=value)')
def send_template(template, recipient, name, lang, var):
    """
    Send a mail using a mail template.

    Example:
        mail-dispatch mail send-template -t welcome -r user@example.com \\
            -v user="Jane" -l de
    """
    # Parse template variables
    context = {}
    for item in var:
        if '=' not in item:
            click.echo(click.style(f"Invalid variable format: {item} (use key=value)", fg="red"))
            return

        key, value = item.split('=', 1)
        context[key] = value

    context.setdefault('current_year', str(datetime.now().year))

    with MailService(logs=[DatabaseMailLog()]) as service:
        try:
            click.echo(f"Rendering template '{template}' and sending to {recipient}...")

            future = service.create_email() \
                .to(recipient, name) \
                .set_lang(lang) \
                .use_mail_template(template, context) \
                .send()

            _print_report(future.result())

        except HandledMailError as e:
            click.echo(click.style(f"Error: {e}", fg="red"))


@mail.command()
@click.argument('addresses', nargs=-1, required=True)
def validate(addresses):
    """
    Check the syntax of mail addresses.

    Example:
        mail-dispatch mail validate user@example.com "broken@"
    """
    from mail_dispatch.addresses import is_valid_mail_address

    invalid = 0
    for address in addresses:
        if is_valid_mail_address(address):
            click.echo(f"{click.style('✓', fg='green')} {address}")
        else:
            invalid += 1
            click.echo(f"{click.style('✗', fg='red')} {address}")

    if invalid:
        raise SystemExit(1)


@mail.command(name='list-templates')
def list_templates():
    """
    List mail templates and template files.

    Example:
        mail-dispatch mail list-templates
    """
    renderer = MailRenderer()

    click.echo(click.style("\n=== Mail Templates ===\n", bold=True))

    try:
        keys = renderer.list_mail_templates()
    except RendererError as e:
        click.echo(click.style(f"  Error: {e}", fg="red"))
        keys = []

    if keys:
        for key in keys:
            definition = renderer.get_mail_template(key)
            click.echo(f"  {click.style(key, fg='cyan')}")
            click.echo(f"    Subject: {definition.subject_template()}")
            click.echo(f"    Text: {definition.text}")
            if definition.html:
                click.echo(f"    HTML: {definition.html}")
            if definition.attachments:
                click.echo(f"    Attachments: {', '.join(a.id for a in definition.attachments)}")
            click.echo()
    else:
        click.echo(click.style("  No mail templates found", fg="yellow"))

    click.echo(click.style("\n=== Template Files ===\n", bold=True))

    file_templates = renderer.list_file_templates()
    if file_templates:
        for template in file_templates:
            click.echo(f"  {click.style(template, fg='cyan')}")
    else:
        click.echo(click.style("  No template files found", fg="yellow"))

    click.echo()


@mail.command()
@click.option('--status', type=click.Choice(['sent', 'failed']), help='Filter by status')
@click.option('--recipient', help='Filter by recipient address')
@click.option('--limit', default=50, help='Maximum number of results (default: 50)')
@click.option('--no-pager', is_flag=True, help='Disable pagination')
def logs(status, recipient, limit, no_pager):
    """
    Show mail delivery logs.

    Example:
        mail-dispatch mail logs
        mail-dispatch mail logs --status failed
        mail-dispatch mail logs --recipient user@example.com
    """
    status_enum = MailStatus[status.upper()] if status else None

    mail_logs = DatabaseMailLog().get_mail_logs(
        receiver=recipient,
        status=status_enum,
        limit=limit
    )

    if not mail_logs:
        click.echo(click.style("No mail logs found", fg="yellow"))
        return

    status_colors = {
        MailStatus.SENT: 'green',
        MailStatus.FAILED: 'red'
    }

    output_lines = []
    output_lines.append(click.style(f"\n=== Mail Logs ({len(mail_logs)} results) ===\n", bold=True))

    for log in mail_logs:
        status_color = status_colors.get(log['status'], 'white')

        output_lines.append(f"ID: {click.style(str(log['id']), fg='cyan')}")
        output_lines.append(f"  Status: {click.style(log['status'].value.upper(), fg=status_color)}")
        output_lines.append(f"  From: {log['sender']}")
        output_lines.append(f"  To: {log['receiver']}")
        output_lines.append(f"  Subject: {log['subject']}")

        if log['message_id']:
            output_lines.append(f"  Message-ID: {log['message_id']}")

        output_lines.append(f"  Created: {log['created_at'].strftime('%Y-%m-%d %H:%M:%S')}")
        output_lines.append("")

    output_text = '\n'.join(output_lines)

    if no_pager or len(mail_logs) <= 20:
        click.echo(output_text)
    else:
        click.echo_via_pager(output_text)


@mail.command()
def test():
    """
    Test SMTP connection and configuration.

    Example:
        mail-dispatch mail test
    """
    with MailService() as service:
        click.echo("Testing SMTP connection...")

        if service.test_connection():
            click.echo(click.style("✓ SMTP connection successful", fg="green"))
        else:
            click.echo(click.style("✗ SMTP connection failed", fg="red"))
