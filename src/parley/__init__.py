"""Parley -- direct messaging backend with real-time delivery.

Entry points::

    from parley.server.app import create_app
    from parley.messaging import MessageController, FanoutDispatcher
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
