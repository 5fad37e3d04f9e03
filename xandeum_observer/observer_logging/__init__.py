"""
Structured logging for the Xandeum Network Observer.

JSON logs with timestamp, node_id and event_type. Use get_logger() in all
modules for aggregation-friendly output.
"""

from xandeum_observer.observer_logging.logger import bind_node, get_logger

__all__ = ["bind_node", "get_logger"]
