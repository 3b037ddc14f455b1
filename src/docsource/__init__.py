"""docsource: documentation tree to content graph, with versioned sidebars."""

__version__ = "0.1.0"
