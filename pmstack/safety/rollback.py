import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

from pmstack.observability.metrics import METRICS

logger = logging.getLogger(__name__)

TeardownFn = Callable[[], Awaitable[Any]]


class RollbackManager:
    """Per-deployment teardown stacks.

    The runner pushes one teardown per Destroy-policy resource as it
    becomes ready. Unwinding pops in reverse readiness order, so a
    resource is always destroyed before anything it depends on.
    """

    def __init__(self):
        # deployment_id -> [(logical_id, teardown_fn), ...] in readiness order
        self._stacks: dict[str, list[tuple[str, TeardownFn]]] = defaultdict(list)

    def push(self, deployment_id: str, logical_id: str, teardown_fn: TeardownFn) -> None:
        self._stacks[deployment_id].append((logical_id, teardown_fn))
        logger.debug(
            "Deployment %s: teardown registered for %s (%d pending)",
            deployment_id,
            logical_id,
            len(self._stacks[deployment_id]),
        )

    def pending(self, deployment_id: str) -> list[str]:
        """Logical ids in the order they would be torn down."""
        return [lid for lid, _ in reversed(self._stacks.get(deployment_id, []))]

    async def rollback(self, deployment_id: str) -> list[dict[str, Any]]:
        """Unwind a deployment's stack, newest first.

        A failed teardown is recorded and unwinding continues.
        """
        stack = self._stacks.pop(deployment_id, [])
        if stack:
            logger.info("Deployment %s: tearing down %d resources", deployment_id, len(stack))

        results = []
        while stack:
            logical_id, teardown_fn = stack.pop()
            try:
                output = await teardown_fn()
            except Exception as e:
                METRICS.record_teardown("failed")
                logger.error("Teardown of %s failed: %s", logical_id, e)
                results.append({"logical_id": logical_id, "status": "failed", "error": str(e)})
                continue
            METRICS.record_teardown("success")
            logger.info("Tore down %s", logical_id)
            results.append({"logical_id": logical_id, "status": "success", "result": output})
        return results

