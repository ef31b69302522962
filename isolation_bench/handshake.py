r"""
Single-slot rendezvous channels for pinning two threads to exact program points.

A channel holds at most one token. The signalling side never blocks; the
waiting side blocks until the token arrives and consumes it. Two channels,
one per direction, give a strict alternation protocol:

    handshake = Handshake()

    # alice                          # bob
    do_step_1()                      handshake.to_bob.wait()
    handshake.to_bob.signal()        do_step_2()
    handshake.to_alice.wait()        handshake.to_alice.signal()
    do_step_3()
"""

import logging
import queue
from dataclasses import dataclass, field

from isolation_bench.errors import HandshakeError, HandshakeTimeout

__all__ = ["Handshake", "HandshakeChannel"]

logger = logging.getLogger(__name__)


class HandshakeChannel:
    """Bounded queue of capacity 1 carrying a unitary signal."""

    def __init__(self, name: str = "channel") -> None:
        self._name = name
        self._slot: queue.Queue[None] = queue.Queue(maxsize=1)

    @property
    def name(self) -> str:
        return self._name

    @property
    def pending(self) -> bool:
        """Whether a token is waiting to be consumed."""
        return self._slot.full()

    def signal(self) -> None:
        """Hand one token to the waiting side.

        Raises:
            HandshakeError: If the previous token was never consumed.
        """
        try:
            self._slot.put_nowait(None)
        except queue.Full:
            msg = f"Handshake '{self._name}' signalled twice without a wait in between"
            raise HandshakeError(msg) from None
        logger.debug("signal %s", self._name)

    def wait(self, timeout: float | None = None) -> None:
        """Block until a token is available, then consume it.

        Args:
            timeout: Seconds to wait; None waits forever.

        Raises:
            HandshakeTimeout: If no token arrived within ``timeout``.
        """
        logger.debug("wait %s", self._name)
        try:
            self._slot.get(timeout=timeout)
        except queue.Empty:
            msg = f"No signal on handshake '{self._name}' within {timeout}s"
            raise HandshakeTimeout(msg) from None


@dataclass
class Handshake:
    """A pair of channels for two coordinating parties, alice and bob."""

    to_alice: HandshakeChannel = field(default_factory=lambda: HandshakeChannel("to_alice"))
    to_bob: HandshakeChannel = field(default_factory=lambda: HandshakeChannel("to_bob"))

    @staticmethod
    def exchange(send: HandshakeChannel, receive: HandshakeChannel, *, timeout: float | None = None) -> None:
        """Signal ``send`` then wait on ``receive``.

        Used by both parties symmetrically, it returns only once both
        have reached the same point.
        """
        send.signal()
        receive.wait(timeout)
