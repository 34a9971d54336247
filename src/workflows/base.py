"""
Contains base class for content workflows
"""
from abc import ABC, abstractmethod
from typing import Any


class ContentWorkflow(ABC):
    """
    Orchestrates fetching → analysis → persistence
    over a set of content rows.
    """

    name: str

    @abstractmethod
    async def run(self, **kwargs: Any) -> Any:
        """
        Execute the workflow and return its report.
        """
        raise NotImplementedError
