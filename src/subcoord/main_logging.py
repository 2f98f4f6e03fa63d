"""Logging configuration for the subcoord CLI."""
import logging

# Logger namespace of the coordinator modules.
PACKAGE_LOGGER: str = "subcoord"


def configure_logging(verbose: bool) -> None:
    """Configure logging so --verbose traces retry loops without asyncio noise.

    The root logger stays at WARNING either way, so failed attempts and
    locked connections always reach stderr. With verbose set, only the
    subcoord loggers drop to DEBUG, showing every attempt and wait.

    Args:
        verbose: If True, log subcoord at DEBUG; otherwise WARNING.
    """
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler()],
    )
    level = logging.DEBUG if verbose else logging.WARNING
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)
