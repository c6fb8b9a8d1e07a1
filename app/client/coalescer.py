"""Client-side request coalescing for price calculations.

Several UI surfaces can feed the same coalescer. It debounces bursts of
edits, skips inputs identical to the last completed or in-flight request,
keeps at most one request in flight, and drops any response that arrives
after a newer one has been applied.

States and transitions:

    IDLE/DONE  --input_changed------> DEBOUNCING   (auto mode, new inputs)
    DEBOUNCING --input_changed------> DEBOUNCING   (timer restarted)
    DEBOUNCING --debounce_elapsed---> IN_FLIGHT
    IN_FLIGHT  --input_changed------> IN_FLIGHT    (deferred until response)
    IN_FLIGHT  --response_received--> DONE, or DEBOUNCING if inputs moved on
    IN_FLIGHT  --error--------------> IDLE         (displayed result kept)
"""
import functools
import hashlib
import json
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from app.constants import DEFAULT_DEBOUNCE_SECONDS, NO_STONE_SENTINELS

logger = logging.getLogger('pricing.client')


class State(Enum):
    IDLE = 'idle'
    DEBOUNCING = 'debouncing'
    IN_FLIGHT = 'in_flight'
    DONE = 'done'


def _stone(type_id: Any, carats: Any) -> Optional[dict]:
    if type_id is None or (isinstance(type_id, str) and type_id.strip().lower() in NO_STONE_SENTINELS):
        return None
    return {'stoneTypeId': type_id, 'caratWeight': carats}


@dataclass(frozen=True)
class PriceInputs:
    """One (metal, stones) tuple as edited in a form."""
    metal_type_id: Any
    metal_weight: float
    primary_stone: Optional[tuple] = None          # (stone_type_id, carats)
    secondary_stones: tuple = field(default_factory=tuple)
    other_stone: Optional[tuple] = None

    def to_request(self) -> dict:
        secondary = [s for s in (_stone(*pair) for pair in self.secondary_stones) if s]
        return {
            'metalTypeId': self.metal_type_id,
            'metalWeight': self.metal_weight,
            'primaryStone': _stone(*self.primary_stone) if self.primary_stone else None,
            'secondaryStones': secondary,
            'otherStone': _stone(*self.other_stone) if self.other_stone else None,
        }

    def key(self) -> str:
        """Stable hash of the request this tuple produces."""
        payload = json.dumps(self.to_request(), sort_keys=True, default=str)
        return hashlib.sha1(payload.encode('utf-8')).hexdigest()


class PriceCoalescer:
    """Debounced, deduplicated, single-flight price requests for one consumer."""

    def __init__(
        self,
        request_fn: Callable[[dict], dict],
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        auto: bool = True,
        on_result: Optional[Callable[[dict], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        timer_factory: Callable[..., Any] = threading.Timer,
    ):
        """Initialize the coalescer.

        Args:
            request_fn: Sends one calculate-price request body, returns the
                response dict or raises.
            debounce_seconds: Quiet period before an automatic request.
            auto: False for manual-only mode (requests only via trigger()).
            on_result: Called with each applied response.
            on_error: Called with the exception of a failed request.
            timer_factory: threading.Timer-compatible factory.
        """
        self._request_fn = request_fn
        self._debounce_seconds = debounce_seconds
        self._auto = auto
        self._on_result = on_result
        self._on_error = on_error
        self._timer_factory = timer_factory

        self._lock = threading.RLock()
        self._state = State.IDLE
        self._timer = None
        self._timer_gen = 0     # bumped on every start/cancel; stale callbacks no-op
        self._latest: Optional[PriceInputs] = None
        self._last_key: Optional[str] = None    # last in-flight or completed request
        self._pending = False
        self._seq = 0
        self._applied_seq = 0

        self.displayed: Optional[dict] = None
        self.last_error: Optional[Exception] = None
        self.request_count = 0

    @property
    def state(self) -> State:
        return self._state

    @property
    def auto(self) -> bool:
        return self._auto

    def set_auto(self, auto: bool) -> None:
        """Switch modes; going manual cancels any pending debounce."""
        with self._lock:
            self._auto = auto
            if not auto and self._state is State.DEBOUNCING:
                self._cancel_timer()
                self._state = State.DONE if self.displayed is not None else State.IDLE

    def _cancel_timer(self) -> None:
        self._timer_gen += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _start_timer(self) -> None:
        self._cancel_timer()
        callback = functools.partial(self._debounce_elapsed, self._timer_gen)
        self._timer = self._timer_factory(self._debounce_seconds, callback)
        if hasattr(self._timer, 'daemon'):
            self._timer.daemon = True
        self._timer.start()
        self._state = State.DEBOUNCING

    def _settled_state(self) -> State:
        return State.DONE if self.displayed is not None else State.IDLE

    # ==================== EVENTS ====================

    def input_changed(self, inputs: PriceInputs) -> None:
        with self._lock:
            self._latest = inputs

            if not self._auto:
                return

            if self._state is State.IN_FLIGHT:
                self._pending = True
                return

            if inputs.key() == self._last_key:
                # Back to what was already requested; nothing to send
                self._cancel_timer()
                self._state = self._settled_state()
                return

            self._start_timer()

    def _debounce_elapsed(self, gen: int) -> None:
        with self._lock:
            # Timer.cancel() cannot stop a callback that is already running
            if gen != self._timer_gen:
                return
            self._timer = None
            if self._state is not State.DEBOUNCING:
                return
        self._send()

    def trigger(self, force: bool = False) -> bool:
        """Request now (manual mode or explicit refresh).

        Returns False when nothing was sent: no inputs yet, identical to the
        last request (unless force), or deferred behind an in-flight request.
        """
        with self._lock:
            self._cancel_timer()
            if self._state is State.IN_FLIGHT:
                self._pending = True
                return False
        return self._send(force=force)

    def _send(self, force: bool = False) -> bool:
        with self._lock:
            if self._state is State.IN_FLIGHT:
                self._pending = True
                return False
            inputs = self._latest
            if inputs is None:
                self._state = State.IDLE
                return False
            key = inputs.key()
            if key == self._last_key and not force:
                self._state = self._settled_state()
                return False

            self._seq += 1
            seq = self._seq
            self._last_key = key
            self._pending = False
            self._state = State.IN_FLIGHT
            self.request_count += 1

        try:
            result = self._request_fn(inputs.to_request())
        except Exception as e:
            logger.warning(f"Price calculation failed: {e}")
            self._response(seq, error=e)
        else:
            self._response(seq, result=result)
        return True

    def _response(self, seq: int, result: Optional[dict] = None, error: Optional[Exception] = None) -> None:
        fire_now = False
        with self._lock:
            if seq <= self._applied_seq:
                logger.debug(f"Discarding out-of-order response #{seq}")
                return
            self._applied_seq = seq

            if error is not None:
                self.last_error = error
                self._last_key = None   # same inputs may be retried
                self._state = State.IDLE
            else:
                self.displayed = result
                self.last_error = None
                self._state = State.DONE

            moved_on = self._pending and self._latest is not None and self._latest.key() != self._last_key
            self._pending = False
            if moved_on:
                if self._auto:
                    self._start_timer()
                else:
                    fire_now = True

        if error is not None:
            if self._on_error:
                self._on_error(error)
        elif self._on_result:
            self._on_result(result)

        if fire_now:
            self._send()

    def cancel(self) -> None:
        """Drop any pending debounce (e.g. surface unmounted)."""
        with self._lock:
            self._cancel_timer()
            if self._state is State.DEBOUNCING:
                self._state = self._settled_state()
