"""
Attack Tree Tool - author attack trees as YAML and render them with Graphviz.

Compiles facts, attacks, mitigations and goals into a styled graph and keeps
a location index so rendered elements can be traced back to their source text.
"""

__version__ = "1.0.0"
