"""Command line entry point: ``rest-server`` / ``python -m rest_security``.

Options given on the command line override the configuration file. Every
option can also come from a ``REST_SERVER_*`` environment variable, and a
``.env`` file in the working directory is loaded first.

.. code-block:: bash

   $ rest-server -c rest-server.json -k private.key -C certificate.pem -l 5
"""

from __future__ import annotations

import click
import structlog
from dotenv import load_dotenv

from . import __version__
from .app import create_app
from .context import SecurityContext
from .errors import ConfigError
from .logging_config import configure_logging
from .settings import Settings, load_settings

log = structlog.get_logger(__name__)


@click.command(help="Restserver - interface to LwM2M server and all clients connected to it")
@click.version_option(__version__, prog_name="rest-server")
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    envvar="REST_SERVER_CONFIG",
    help="Specify parameters configuration file",
)
@click.option(
    "-l",
    "--log",
    "log_level",
    type=int,
    envvar="REST_SERVER_LOG",
    help="Specify logging level (0-5)",
)
@click.option(
    "-k",
    "--private_key",
    type=click.Path(dir_okay=False),
    envvar="REST_SERVER_PRIVATE_KEY",
    help="Specify TLS security private key file",
)
@click.option(
    "-C",
    "--certificate",
    type=click.Path(dir_okay=False),
    envvar="REST_SERVER_CERTIFICATE",
    help="Specify TLS security certificate file",
)
@click.option("--host", default="0.0.0.0", envvar="REST_SERVER_HOST", show_default=True)
def cli(
    config_file: str | None,
    log_level: int | None,
    private_key: str | None,
    certificate: str | None,
    host: str,
) -> None:
    settings = Settings()
    # Provisional: config file warnings already use the requested level and streams.
    configure_logging(
        settings.logging.level if log_level is None else log_level,
        cache_loggers=False,
    )
    try:
        if config_file:
            load_settings(config_file, settings)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    if log_level is not None:
        settings.logging.level = log_level
    if private_key:
        settings.http.security.private_key = private_key
    if certificate:
        settings.http.security.certificate = certificate

    configure_logging(
        settings.logging.level,
        timestamp=settings.logging.timestamp,
        human_readable_timestamp=settings.logging.human_readable_timestamp,
    )

    try:
        context = SecurityContext.from_settings(settings)
    except ConfigError as e:
        log.error("failed to load security configuration", reason=str(e))
        raise click.ClickException(str(e)) from e

    try:
        ssl_context = context.tls.ssl_context() if context.tls is not None else None
        app = create_app(context)
        log.info(
            "rest server starting",
            host=host,
            port=settings.http.port,
            tls=ssl_context is not None,
        )
        app.run(host=host, port=settings.http.port, ssl_context=ssl_context, threaded=True)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    finally:
        context.close()


def main() -> None:
    load_dotenv()
    cli()


if __name__ == "__main__":
    main()
