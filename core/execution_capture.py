"""
Execution Capture Engine

An execution capture records the high, low and traded volume of the
execution stream from the moment it is created until the caller removes it.
Typical use: create a capture named after an order acceptance id right
before sending the order, then read how much was filled and where the
market went while the order was live.

Rules applied to every open window for each execution:
    - start_time is set once, by the first execution after creation (even
      when that execution carries no timestamp)
    - open/high/low/close that are still None take the execution price
    - high and low only ever widen
    - close and end_time follow the last applied execution
    - size goes to buy_volume or sell_volume by taker side; other side tags
      add no volume
    - filled grows when the capture id matches the buy or sell order id
"""

import threading
from typing import Dict, Iterable, List, Optional

from core.logging import get_logger
from core.schemas import Execution, ExecutionCaptureWindow


class ExecutionCaptureEngine:
    """
    Owns the capture-id -> window table.

    All operations take the same lock, so one ingest() batch is applied to
    every window before any other create/remove/get/ingest runs.

    Example:
        >>> engine = ExecutionCaptureEngine()
        >>> engine.create("A", seed_price=100.0)
        >>> engine.ingest([Execution(price=105, size=2, side="buy")])
        >>> engine.get("A").high
        105.0
    """

    def __init__(self):
        self._windows: Dict[str, ExecutionCaptureWindow] = {}
        self._lock = threading.Lock()
        self.logger = get_logger(__name__)

    # ============================================
    # Window Lifecycle
    # ============================================

    def create(self, capture_id: str, seed_price: Optional[float] = None) -> None:
        """
        Open a window seeded at seed_price.

        Re-creating an existing id silently replaces the old window.
        """
        with self._lock:
            if capture_id in self._windows:
                self.logger.debug(f"Execution capture '{capture_id}' recreated")
            self._windows[capture_id] = ExecutionCaptureWindow.seeded(seed_price)

    def remove(self, capture_id: str) -> None:
        """Close a window. Unknown ids are ignored."""
        with self._lock:
            self._windows.pop(capture_id, None)

    def get(self, capture_id: str) -> Optional[ExecutionCaptureWindow]:
        """
        Return a copy of the window, or None if no such capture exists.

        The copy is detached from the table, so later executions do not
        change a window the caller already holds.
        """
        with self._lock:
            window = self._windows.get(capture_id)
            return window.model_copy() if window is not None else None

    def capture_ids(self) -> List[str]:
        with self._lock:
            return list(self._windows.keys())

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def __contains__(self, capture_id: object) -> bool:
        with self._lock:
            return capture_id in self._windows

    # ============================================
    # Ingestion
    # ============================================

    def ingest(self, executions: Iterable[Execution]) -> None:
        """
        Apply a batch of executions, in order, to every open window.

        Args:
            executions: Executions (models or dicts) in arrival order

        Raises:
            pydantic.ValidationError: If any item is not a valid execution;
                no window is touched in that case
        """
        # Validate the whole batch first so a bad item cannot half-apply it
        batch = [Execution.model_validate(execution) for execution in executions]

        with self._lock:
            for execution in batch:
                self._apply_order_fill(execution)
                for window in self._windows.values():
                    self._apply(window, execution)

    def _apply_order_fill(self, execution: Execution) -> None:
        for order_id in (execution.buy_order_id, execution.sell_order_id):
            if order_id is not None and order_id in self._windows:
                self._windows[order_id].filled += execution.size

    @staticmethod
    def _apply(window: ExecutionCaptureWindow, execution: Execution) -> None:
        price = execution.price

        if not window.started:
            window.start_time = execution.timestamp
            window.mark_started()
        if window.open is None:
            window.open = price
        if window.high is None or price > window.high:
            window.high = price
        if window.low is None or price < window.low:
            window.low = price
        window.close = price
        window.end_time = execution.timestamp

        if execution.side == "buy":
            window.buy_volume += execution.size
        elif execution.side == "sell":
            window.sell_volume += execution.size
