import asyncio
from collections import Counter
from collections.abc import Awaitable, Callable
from typing import Any

from ..models import DeliveryOutcome

CHECK_TIMEOUT_SECONDS = 15.0


class HealthMonitor:
    """Runs registered service checks and counts delivery outcomes since startup."""

    def __init__(self) -> None:
        self.checks: dict[str, Callable[[], Awaitable[Any]]] = {}
        self.outcomes: Counter[DeliveryOutcome] = Counter()

    def register_check(self, name: str, check_func: Callable[[], Awaitable[Any]]) -> None:
        self.checks[name] = check_func

    def record_outcome(self, outcome: DeliveryOutcome) -> None:
        self.outcomes[outcome] += 1

    def delivery_summary(self) -> dict[str, int]:
        return {outcome.value: self.outcomes[outcome] for outcome in DeliveryOutcome}

    async def check_health(self) -> dict[str, Any]:
        results: dict[str, Any] = {}
        for name, check_func in self.checks.items():
            try:
                results[name] = await asyncio.wait_for(check_func(), timeout=CHECK_TIMEOUT_SECONDS)
            except TimeoutError:
                results[name] = {"status": "error", "message": f"no answer in {CHECK_TIMEOUT_SECONDS:.0f}s"}
            except Exception as e:
                results[name] = {"status": "error", "message": str(e)}
        return results
