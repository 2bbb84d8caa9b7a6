from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar


@dataclass(frozen=True)
class UseCaseRequest:
    """Input DTO base; concrete requests are frozen dataclasses."""


@dataclass(frozen=True)
class UseCaseResponse:
    """Output DTO base. Failures are reported, not raised."""
    success: bool = True
    error: Optional[str] = None


RequestT = TypeVar("RequestT", bound=UseCaseRequest)
ResponseT = TypeVar("ResponseT", bound=UseCaseResponse)


class UseCase(ABC, Generic[RequestT, ResponseT]):
    @abstractmethod
    def execute(self, request: RequestT) -> ResponseT:
        ...
