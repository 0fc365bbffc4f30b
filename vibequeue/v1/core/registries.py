from typing import Generic, Protocol, TypeVar

from vibequeue.v1.infra.jobs.schemas import HandlerResult

# Base registry implementation
T = TypeVar("T")


class Registry(Generic[T]):
    """Generic registry for pluggable implementations."""

    def __init__(self, name: str):
        self.name = name
        self._implementations: dict[str, T] = {}
        self._frozen = False

    def register(self, name: str, implementation: T) -> None:
        """Register an implementation with a given name, replacing any previous one."""
        if self._frozen:
            raise RuntimeError(
                f"Cannot register '{name}' in {self.name.lower()} registry: "
                "registry is frozen in production mode"
            )
        self._implementations[name] = implementation

    def get(self, name: str) -> T:
        """Get an implementation by name."""
        if name not in self._implementations:
            raise KeyError(
                f"No {self.name.lower()} implementation registered with name: {name}"
            )
        return self._implementations[name]

    def lookup(self, name: str) -> T | None:
        """Get an implementation by name, or None when nothing is registered."""
        return self._implementations.get(name)

    def list(self) -> list[str]:
        """List all registered implementation names."""
        return list(self._implementations.keys())

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        """Check if the registry is frozen."""
        return self._frozen


# Job Registry - AI queue handlers
class JobHandler(Protocol):
    """Protocol for handlers that execute queued AI generation jobs."""

    async def execute(self, job_id: int, prompt: str, model: str) -> HandlerResult:
        """
        Execute a queued job.

        Args:
            job_id: Queue row id, used to find the record the job writes to
            prompt: Prompt text sent to the generation service
            model: Model identifier for the generation service

        Returns:
            Raw response text and the id of the record the handler updated
        """
        ...


class JobRegistry(Registry[JobHandler]):
    """Registry mapping job types to their handlers."""

    def __init__(self):
        super().__init__("Job")
