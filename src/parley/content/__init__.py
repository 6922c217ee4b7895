"""Owner-scoped item store."""

from parley.content.items import ItemController, parse_tags

__all__ = ["ItemController", "parse_tags"]
