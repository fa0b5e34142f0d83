from abc import ABC, abstractmethod


class BaseObjectStorage(ABC):
    """Contract for object storage backends that receive compressed images."""

    @abstractmethod
    async def put_object(self, key: str, data: bytes, content_type: str) -> str:
        """Store ``data`` under ``key`` and return the key actually written.

        Raises:
            StorageError: if the object was not stored. A partial write is
                never reported as success.
        """

    @abstractmethod
    async def delete_object(self, key: str) -> None:
        """Remove an object. Missing objects are not an error."""
