"""Error taxonomy for RAML resolution and code generation.

Every failure is raised as a RamlError subclass; callers (the CLI, tests)
decide whether to abort.
"""


class RamlError(Exception):
    """Base exception for all raml-codegen errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class ParseError(RamlError):
    """A specification document is unreadable or malformed."""

    def __init__(self, message: str, filename: str = ""):
        super().__init__(message, {"file": filename} if filename else None)
        self.filename = filename


class UnresolvedReferenceError(RamlError):
    """A library alias, type, trait, resource type or security scheme can't be found."""

    def __init__(self, name: str, context: str = "", message: str = ""):
        details = {"name": name}
        if context:
            details["context"] = context
        super().__init__(message or f"can't resolve reference {name!r}", details)
        self.name = name
        self.context = context


class LibraryCycleError(UnresolvedReferenceError):
    """Libraries import each other in a cycle."""

    def __init__(self, chain: list[str]):
        super().__init__(
            chain[-1],
            context=" -> ".join(chain),
            message="library import cycle detected",
        )
        self.chain = chain


class GenerationError(RamlError):
    """Rendering one generated artifact failed."""

    def __init__(self, message: str, filename: str = ""):
        super().__init__(message, {"file": filename} if filename else None)
        self.filename = filename


class OutputError(RamlError):
    """A generated directory or file can't be created."""

    def __init__(self, path: str, error: OSError):
        super().__init__(f"can't write {path}: {error.strerror or error}", {"path": path})
        self.path = path
        self.error = error
