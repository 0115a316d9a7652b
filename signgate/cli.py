"""SignGate CLI application with Typer."""

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, NoReturn

import typer

from signgate import __version__
from signgate.app import SignRequest, to_response
from signgate.app.adapters import HmacUrlSigner
from signgate.bootstrap import bootstrap_application
from signgate.config import ConfigurationError, get_settings, set_settings
from signgate.utils.cli_output import json_response
from signgate.utils.timestamps import humanize_duration

if TYPE_CHECKING:
    from signgate.bootstrap import ApplicationContainer

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

app = typer.Typer(
    name="signgate",
    help="URL signing gateway: time-limited, origin-restricted signed URLs",
    add_completion=True,
    no_args_is_help=True,
)
policy_app = typer.Typer(help="Expiration policy inspection")
app.add_typer(policy_app, name="policy")


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"SignGate version {__version__}")
        raise typer.Exit()


def _configuration_error(exc: Exception) -> NoReturn:
    typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=2) from exc


def _load_container() -> "ApplicationContainer":
    try:
        return bootstrap_application()
    except ConfigurationError as exc:
        _configuration_error(exc)


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
    config_dir: Annotated[
        Path | None,
        typer.Option("--config-dir", help="Override config directory"),
    ] = None,
) -> None:
    """SignGate - URL signing gateway."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)

    try:
        settings = get_settings()
    except ConfigurationError as exc:
        _configuration_error(exc)
    if config_dir:
        settings.config_dir = config_dir
    set_settings(settings)


@app.command("sign")
def sign(
    url: Annotated[str, typer.Argument(help="Resource URL to sign")],
    valid_until: Annotated[
        str | None,
        typer.Option("--valid-until", help="ISO-8601 UTC expiry (default: now + policy)"),
    ] = None,
    valid_source: Annotated[
        str | None,
        typer.Option("--valid-source", help="Client/origin the signed URL is restricted to"),
    ] = None,
) -> None:
    """Sign a URL and print the JSON response body.

    Exits with code 2 when the request itself is invalid. A URL outside the
    signable URL space, or a signer failure, is reported in the ``error``
    field with exit code 0.

    Example:
        signgate sign https://cdn.example/video.mp4
        signgate sign https://cdn.example/video.mp4 --valid-until 2030-01-01T00:00:00Z
    """
    container = _load_container()
    request = SignRequest(url=url, valid_until=valid_until, valid_source=valid_source)
    response = to_response(container.gateway.sign_url(request))

    typer.echo(json.dumps(response.body, indent=2))
    if not response.ok:
        raise typer.Exit(code=2)


@app.command("verify")
def verify(
    signed_url: Annotated[str, typer.Argument(help="Signed URL to check")],
    client_ip: Annotated[
        str | None,
        typer.Option("--client-ip", help="Address of the requesting client"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Verify a signed URL against the configured signing keys."""
    container = _load_container()
    signer = container.signer
    if not isinstance(signer, HmacUrlSigner):
        typer.secho("Configured signer does not support verification", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)

    result = signer.verify(signed_url, client_ip=client_ip, now=container.clock.now())

    if json_output:
        typer.echo(
            json_response(
                "verification_result",
                1,
                status=result.status,
                reason=result.reason,
                resource=result.resource,
            )
        )
    elif result.ok:
        typer.secho(f"Signed URL is valid for {result.resource}", fg=typer.colors.GREEN)
    else:
        typer.secho(f"{result.status}: {result.reason}", fg=typer.colors.RED, err=True)

    if not result.ok:
        raise typer.Exit(code=1)


@policy_app.command("show")
def policy_show(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show the effective expiration policy and signable URL prefixes."""
    container = _load_container()
    expiry = container.gateway.default_expiry_seconds
    prefixes = (
        container.signer.url_prefixes if isinstance(container.signer, HmacUrlSigner) else []
    )

    if json_output:
        typer.echo(
            json_response(
                "signing_policy",
                1,
                expires_seconds=expiry,
                expires_human=humanize_duration(expiry),
                signable_url_prefixes=prefixes,
            )
        )
        return

    typer.echo(f"Signed URLs expire after {humanize_duration(expiry)} ({expiry} seconds)")
    if not prefixes:
        typer.secho("No signable URL prefixes configured", fg=typer.colors.YELLOW)
        return
    for prefix in prefixes:
        typer.echo(f"  {prefix}")


if __name__ == "__main__":
    app()
