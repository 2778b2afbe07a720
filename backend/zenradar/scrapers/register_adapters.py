"""Register the specialized site parsers with the factory."""

from typing import Optional

import structlog

from zenradar.scrapers.factory import ParserFactory, parser_factory
from zenradar.scrapers.adapters import HoriishichimeienParser, PoppateaParser

logger = structlog.get_logger(__name__)

SPECIALIZED_PARSERS = (
    PoppateaParser,
    HoriishichimeienParser,
)


def register_all_parsers(factory: Optional[ParserFactory] = None) -> ParserFactory:
    """Register all specialized parsers.

    Args:
        factory: Factory to register with, the global one by default

    Returns:
        The factory
    """
    factory = factory or parser_factory

    for parser_class in SPECIALIZED_PARSERS:
        try:
            factory.register_parser(parser_class.site_id, parser_class)
        except ValueError as e:
            logger.error(
                "parser_registration_failed",
                site=parser_class.site_id,
                error=str(e),
                exc_info=True,
            )

    logger.info(
        "all_parsers_registered",
        count=len(factory.get_registered_sites()),
        sites=factory.get_registered_sites(),
    )
    return factory
