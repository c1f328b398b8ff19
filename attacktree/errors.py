"""Exception hierarchy for attack tree parsing, compiling and rendering."""

from typing import Optional


class AttackTreeError(Exception):
    """Base class for every error raised by the attack tree toolkit."""
    pass


class DocumentError(AttackTreeError):
    """Raised when text cannot be turned into a Document."""
    pass


class DocumentSyntaxError(DocumentError):
    """Raised when the YAML front end rejects the text."""
    pass


class MalformedDocument(DocumentError):
    """Raised when parsed YAML does not have the attack tree shape."""

    def __init__(self, path: str, problem: str):
        self.path = path
        self.problem = problem
        super().__init__(f"{path} {problem}" if path else problem)


class CompileError(AttackTreeError):
    """Raised when a Document cannot be compiled into a graph."""
    pass


class DuplicateId(CompileError):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node id '{node_id}' is declared more than once")


class UnknownReference(CompileError):
    def __init__(self, node_id: str, missing_id: str):
        self.node_id = node_id
        self.missing_id = missing_id
        super().__init__(f"Node '{node_id}' references undeclared node: {missing_id}")


class SpanNotFound(AttackTreeError):
    """Raised by strict location lookups when no span was recorded."""

    def __init__(self, node_id: str, successor_id: Optional[str] = None):
        self.node_id = node_id
        self.successor_id = successor_id
        if successor_id is None:
            message = f"No source location for node '{node_id}'"
        else:
            message = f"No source location for edge '{node_id}->{successor_id}'"
        super().__init__(message)


class LayoutError(AttackTreeError):
    """Raised when the Graphviz layout engine fails."""
    pass


class SettingsError(AttackTreeError):
    """Raised when the settings file cannot be loaded."""
    pass
