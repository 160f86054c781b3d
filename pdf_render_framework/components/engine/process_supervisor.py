"""
Spawns and supervises the headless engine process.

`EngineProcess` launches the engine binary with its debugging port bound to a
given port, keeps its stdout/stderr in memory while it runs and writes them to
the log line by line once the process exits.
"""
import asyncio
import codecs
from typing import List, Optional, Sequence, Tuple

from pdf_render_framework.core.exceptions import ResourceError
from pdf_render_framework.core.logger import get_logger

logger = get_logger(__name__)

READ_CHUNK_SIZE = 4096
KILL_WAIT_TIMEOUT_S = 5.0


def build_engine_args(port: int, extra_args: Sequence[str] = (), window_size: Optional[Tuple[int, int]] = None) -> List[str]:
    """
    Builds the command-line flags passed to the engine binary.

    Args:
        port (int): Remote-debugging port to bind.
        extra_args (Sequence[str]): Caller-supplied flags, forwarded verbatim.
        window_size (Optional[Tuple[int, int]]): Optional (width, height) of the headless window.
    """
    args = [
        "--headless",
        f"--remote-debugging-port={port}",
        "--disable-gpu",
        *extra_args,
    ]
    if window_size is not None:
        args.append(f"--window-size={window_size[0]},{window_size[1]}")
    return args


class StreamBuffer:
    """Append-only buffer filled from a subprocess pipe until end-of-stream."""

    def __init__(self, stream: Optional[asyncio.StreamReader]):
        self.chunks: List[str] = []
        self._stream = stream
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def data(self) -> str:
        return "".join(self.chunks)

    async def drain(self) -> None:
        if self._stream is None:
            return
        while True:
            chunk = await self._stream.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            # Multibyte characters may straddle two reads.
            self.chunks.append(self._decoder.decode(chunk))
        self.chunks.append(self._decoder.decode(b"", final=True))


class EngineProcess:
    """
    Handle on a spawned engine process.

    Attributes:
        binary_path (str): Executable that was launched.
        port (int): Remote-debugging port the engine listens on.
        process (asyncio.subprocess.Process): The running process.
        stdout (StreamBuffer): Captured standard output.
        stderr (StreamBuffer): Captured standard error.
    """

    def __init__(self, binary_path: str, port: int, process: asyncio.subprocess.Process, log_output: bool = True):
        self.binary_path = binary_path
        self.port = port
        self.process = process
        self.log_output = log_output
        self.stdout = StreamBuffer(process.stdout)
        self.stderr = StreamBuffer(process.stderr)
        self._watcher = asyncio.ensure_future(self._watch())

    @classmethod
    async def spawn(
        cls,
        binary_path: str,
        port: int,
        extra_args: Sequence[str] = (),
        window_size: Optional[Tuple[int, int]] = None,
        log_output: bool = True,
    ) -> 'EngineProcess':
        """
        Launches the engine headless with GPU disabled and its debugging port bound to `port`.

        Raises:
            ResourceError: If the process could not be started.
        """
        args = build_engine_args(port, extra_args, window_size)
        logger.debug(f"Spawning engine: {binary_path} {' '.join(args)}")
        try:
            process = await asyncio.create_subprocess_exec(
                binary_path,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"Failed to spawn engine '{binary_path}': {e}", exc_info=True)
            raise ResourceError(f"Failed to spawn engine '{binary_path}'", original_exception=e)
        return cls(binary_path, port, process, log_output=log_output)

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def running(self) -> bool:
        return self.process.returncode is None

    async def _watch(self) -> int:
        await asyncio.gather(self.stdout.drain(), self.stderr.drain())
        code = await self.process.wait()
        self._report(code)
        return code

    def _report(self, code: Optional[int]) -> None:
        if self.log_output:
            logger.info(f"Engine stopped ({code})")
            self._flush("stdout", self.stdout.data)
            self._flush("stderr", self.stderr.data)

    def _flush(self, tag: str, data: str) -> None:
        for line in data.split("\n"):
            logger.info(f"(engine) ({tag}) {line}")

    async def wait(self) -> int:
        """Waits for the process to exit and its output to be flushed; returns the exit code."""
        return await self._watcher

    async def kill(self) -> Optional[int]:
        """
        Sends SIGKILL to the engine and waits for it to exit.

        Helper processes that inherited the output pipes can keep them open
        after the engine is gone; output is then awaited for at most
        `KILL_WAIT_TIMEOUT_S` and whatever was captured so far is logged.
        """
        if self.running:
            logger.debug(f"Killing engine process {self.pid}")
            try:
                self.process.kill()
            except ProcessLookupError:
                pass
        try:
            return await asyncio.wait_for(asyncio.shield(self._watcher), KILL_WAIT_TIMEOUT_S)
        except asyncio.TimeoutError:
            logger.warning(f"Engine output still open {KILL_WAIT_TIMEOUT_S}s after kill, not waiting for it")
        self._watcher.cancel()
        code = self.process.returncode
        self._report(code)
        return code
