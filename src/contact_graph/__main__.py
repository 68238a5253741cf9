"""Entry point for python -m contact_graph execution.

This module enables running contact-graph as a module:
    python -m contact_graph --help
    python -m contact_graph list
"""

from contact_graph.cli import app

if __name__ == "__main__":
    app()
