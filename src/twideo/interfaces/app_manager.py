from abc import ABC, abstractmethod


class BaseAppManager(ABC):
    @abstractmethod
    async def run(self) -> None:
        """Runs the bot until a shutdown signal arrives."""
        pass
