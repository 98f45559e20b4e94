from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from core.domain.entities.token_entity import TokenEntity


class TokenRepository(ABC):
    """
    Abstraction for token persistence.

    Tokens are immutable after creation; the only write is an atomic
    create-if-absent.
    """

    @abstractmethod
    async def get(self, token_id: str) -> Optional[TokenEntity]:
        """
        Retrieve a token by lowercase address.
        """
        raise NotImplementedError

    @abstractmethod
    async def insert_if_absent(self, token: TokenEntity) -> TokenEntity:
        """
        Persist `token` unless one with the same id exists.

        Returns:
            The stored token (the pre-existing one when the insert lost a race).
        """
        raise NotImplementedError
