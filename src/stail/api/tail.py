from __future__ import annotations

import asyncio
import logging
import signal

from stail.clients.kinesis import KinesisClient
from stail.core.config import TailConfig
from stail.core.interfaces import IRecordSink
from stail.orchestration.orchestrator import TailOutput, tail_stream
from stail.orchestration.utils import deadline_after
from stail.sinks import make_sink
from stail.throttling.pacer import Pacer

logger = logging.getLogger(__name__)

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


# ---------------------------------------------------------------------------
# Signal helpers (process-specific, application layer)
# ---------------------------------------------------------------------------


def _install_stop_handlers(pacer: Pacer) -> list[signal.Signals]:
    """Turn SIGINT/SIGTERM into a cooperative stop of the poll loop."""
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []

    def _on_signal(signum: signal.Signals) -> None:
        logger.info("received %s, stopping after the in-flight pulls", signum.name)
        pacer.stop()

    for signum in STOP_SIGNALS:
        try:
            loop.add_signal_handler(signum, _on_signal, signum)
        except (NotImplementedError, RuntimeError):
            # not supported on this platform / thread; KeyboardInterrupt still applies
            continue
        installed.append(signum)
    return installed


def _remove_stop_handlers(installed: list[signal.Signals]) -> None:
    loop = asyncio.get_running_loop()
    for signum in installed:
        loop.remove_signal_handler(signum)


async def tail(
    *,
    config: TailConfig,
    sink: IRecordSink | None = None,
) -> TailOutput:
    """
    High-level convenience API for the CLI and scripts.

    Builds the Kinesis client, sink and pacer for `config`, runs the
    orchestrator, and always closes the client.
    """
    pacer = Pacer(deadline=deadline_after(config.duration))
    client = KinesisClient.from_config(config)
    out = sink if sink is not None else make_sink(config.json_output)

    installed = _install_stop_handlers(pacer)
    try:
        return await tail_stream(
            config=config,
            client=client,
            sink=out,
            pacer=pacer,
        )
    finally:
        _remove_stop_handlers(installed)
        await client.aclose()
