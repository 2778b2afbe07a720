"""Registry of site parsers.

Sites with a registered parser get it; every other site is handled by the
selector-driven GenericParser. Adding a site never touches dispatch logic.
"""

from typing import Dict, List, Type

import structlog

from zenradar.scrapers.base import BaseParser
from zenradar.scrapers.generic import GenericParser


logger = structlog.get_logger(__name__)


class ParserFactory:
    """Creates parser instances keyed by site id."""

    def __init__(self):
        self._parser_registry: Dict[str, Type[BaseParser]] = {}

    def register_parser(self, site_id: str, parser_class: Type[BaseParser]) -> None:
        """Register a specialized parser class for a site.

        Args:
            site_id: Site identifier (e.g., "poppatea")
            parser_class: Parser class (must inherit from BaseParser)
        """
        if not isinstance(parser_class, type) or not issubclass(parser_class, BaseParser):
            raise ValueError(f"Parser class must inherit from BaseParser: {parser_class}")

        self._parser_registry[site_id] = parser_class
        logger.debug("parser_registered", site=site_id, parser=parser_class.__name__)

    def create_parser(self, site_id: str) -> BaseParser:
        """Create the parser for a site.

        Args:
            site_id: Site identifier

        Returns:
            Registered parser instance, or a GenericParser
        """
        parser_class = self._parser_registry.get(site_id, GenericParser)
        return parser_class()

    def get_registered_sites(self) -> List[str]:
        return list(self._parser_registry.keys())

    def has_parser(self, site_id: str) -> bool:
        """True if a specialized parser is registered for the site."""
        return site_id in self._parser_registry


# Global factory instance
parser_factory = ParserFactory()


def get_parser_factory() -> ParserFactory:
    """Get the global parser factory with the built-in parsers registered."""
    if not parser_factory.get_registered_sites():
        from zenradar.scrapers.register_adapters import register_all_parsers

        register_all_parsers(parser_factory)
    return parser_factory
