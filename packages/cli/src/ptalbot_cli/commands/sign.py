"""sign command: compute the signature header for a webhook payload."""

from __future__ import annotations

import click


@click.command("sign")
@click.option(
    "--secret",
    envvar="GITHUB_WEBHOOK_SECRET",
    required=True,
    help="Webhook secret. Defaults to $GITHUB_WEBHOOK_SECRET.",
)
@click.argument("payload", type=click.File("rb"))
def sign_cmd(secret: str, payload):
    """Print the X-Hub-Signature-256 value for PAYLOAD.

    Useful for replaying a saved delivery against a running bot:

    \b
      curl -X POST localhost:3000/api/webhook \\
        -H "X-GitHub-Event: pull_request_review" \\
        -H "X-Hub-Signature-256: $(ptalbot sign body.json)" \\
        --data-binary @body.json
    """
    from ptalbot_core.webhooks.signature import sign_body

    click.echo(sign_body(payload.read(), secret))
