"""Domain exceptions raised by the conversation cache."""


class ThreadNotFoundError(KeyError):
    """Raised when an operation targets a thread that is not in the store.

    The reconciler always creates a thread before merging into it, so hitting
    this means a caller used the direct store API with an unknown id.

    Args:
        thread_id: The id that was looked up.
    """

    def __init__(self, thread_id: str):
        self.thread_id = thread_id
        super().__init__(thread_id)

    def __str__(self) -> str:
        return f"Thread {self.thread_id} does not exist"


class CachePersistenceError(Exception):
    """Raised when the snapshot file could not be written.

    The in-memory store is left as-is when this is raised; only durability
    is lost.

    Args:
        path: The snapshot path that failed.
        message: Description of the failure.
    """

    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        super().__init__(f"Failed to write cache {path}: {message}")
