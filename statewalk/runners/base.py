"""Base runner interface for executing Task resources."""

from __future__ import annotations

import abc
from typing import Any, Dict, Optional, Tuple


class BaseRunner(metaclass=abc.ABCMeta):
    """Abstract base runner for units of work named by a resource URI."""

    @abc.abstractmethod
    async def run(
        self,
        resource: str,
        env: Optional[Dict[str, str]] = None,
        secrets: Optional[Dict[str, Any]] = None,
    ) -> Tuple[int, bytes]:
        """Run ``resource`` to completion and return its exit status and output.

        Cancelling the awaiting task is the cancel operation: implementations
        must stop the work and release anything staged for it before the
        cancellation propagates.

        Raises:
            ValueError: If ``resource`` is not something this runner handles.
        """
        raise NotImplementedError
