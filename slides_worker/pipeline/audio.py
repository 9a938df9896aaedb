"""
Full-duration audio capture.

The recorder streams the asset's audio track out of an ffmpeg subprocess.
Two signals compete to stop it: the process reaching the end of the asset,
and a fallback timer of duration + grace seconds. Whichever fires first
stops the recorder; the stop is a check-and-set, so the loser is a no-op.
"""

import logging
import subprocess
import threading
from typing import Callable, List, Optional, IO

import ffmpeg

from ..errors import CaptureUnavailable
from ..models import AudioPayload, VideoAsset
from .util import DEFAULT_AUDIO_MIME

logger = logging.getLogger("slides_worker")

PLAYBACK_END = "playback-end"
TIMEOUT = "timeout"
ABORTED = "aborted"

CHUNK_SIZE = 64 * 1024

WATCHER_PREFIX = "audio-capture-"


def spawn_audio_process(asset: VideoAsset) -> subprocess.Popen:
    """Start ffmpeg writing the asset's audio track to stdout as mono MP3"""
    return (
        ffmpeg
        .input(asset.path)
        .audio
        .output('pipe:', format='mp3', acodec='libmp3lame', ac=1, ar=16000)
        .global_args('-hide_banner', '-loglevel', 'error')
        .run_async(pipe_stdout=True, pipe_stderr=True)
    )


class AudioRecorder:
    """Accumulates the output of one audio capture process"""

    def __init__(
        self,
        asset: VideoAsset,
        process_factory: Callable[[VideoAsset], subprocess.Popen] = spawn_audio_process,
        mime_type: str = DEFAULT_AUDIO_MIME
    ):
        self.asset = asset
        self.process_factory = process_factory
        self.mime_type = mime_type
        self.process = None
        self.payload: Optional[AudioPayload] = None
        self.stopped_by: Optional[str] = None
        self.bytes_captured = 0
        self._chunks: List[bytes] = []
        self._stderr: List[bytes] = []
        self._readers: List[threading.Thread] = []
        self._lock = threading.Lock()
        self._stopped = threading.Event()

    def start(self) -> None:
        """Start capture; raises CaptureUnavailable if the process cannot be started"""
        if self.process is not None:
            raise RuntimeError("Recorder already started")

        try:
            self.process = self.process_factory(self.asset)
        except (OSError, ffmpeg.Error) as e:
            raise CaptureUnavailable(f"Could not start audio capture for {self.asset.path}: {e}") from e

        self._readers = [
            threading.Thread(target=self._drain, args=(self.process.stdout, self._chunks), daemon=True),
            threading.Thread(target=self._drain, args=(self.process.stderr, self._stderr), daemon=True),
        ]
        for reader in self._readers:
            reader.start()

        logger.info(f"Audio capture started for {self.asset.path}")

    @staticmethod
    def _drain(stream: Optional[IO[bytes]], sink: List[bytes]) -> None:
        if stream is None:
            return
        for chunk in iter(lambda: stream.read(CHUNK_SIZE), b''):
            sink.append(chunk)

    def wait_for_end(self, timeout: Optional[float] = None) -> int:
        """Block until the capture process exits on its own"""
        return self.process.wait(timeout)

    def wait_stopped(self, timeout: Optional[float] = None) -> bool:
        return self._stopped.wait(timeout)

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode if self.process is not None else None

    @property
    def stderr_text(self) -> str:
        return b''.join(self._stderr).decode(errors='replace').strip()

    def stop(self, reason: str = ABORTED) -> bool:
        """
        Stop capture and freeze the accumulated output into one AudioPayload.

        Returns:
            True if this call stopped the recorder, False if it was already stopped
        """
        if self.process is None:
            raise RuntimeError("Recorder not started")

        with self._lock:
            if self.stopped_by is not None:
                return False
            self.stopped_by = reason

        try:
            if self.process.poll() is None:
                self.process.terminate()
            try:
                self.process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self.process.kill()
                self.process.wait()

            for reader in self._readers:
                reader.join()
        finally:
            data = b''.join(self._chunks)
            self.bytes_captured = len(data)
            self.payload = AudioPayload.from_bytes(data, self.mime_type)
            self._stopped.set()

        logger.info(f"Audio capture stopped by {reason} for {self.asset.path}: {self.bytes_captured} bytes")
        return True


def _stop_on_end(recorder: AudioRecorder) -> None:
    recorder.wait_for_end()
    recorder.stop(reason=PLAYBACK_END)


def extract_audio(
    asset: VideoAsset,
    grace_sec: float = 1.0,
    recorder_factory: Callable[[VideoAsset], AudioRecorder] = AudioRecorder
) -> AudioPayload:
    """
    Capture the full-duration audio track of an asset

    Raises:
        CaptureUnavailable: if the asset has no audio or capture cannot run
    """
    if not asset.has_audio:
        raise CaptureUnavailable(f"No audio stream in {asset.path}")

    recorder = recorder_factory(asset)
    recorder.start()

    timer = threading.Timer(asset.duration_sec + grace_sec, recorder.stop, kwargs={'reason': TIMEOUT})
    timer.daemon = True
    timer.name = WATCHER_PREFIX + "timer"
    watcher = threading.Thread(
        target=_stop_on_end, args=(recorder,), name=WATCHER_PREFIX + "end", daemon=True
    )

    try:
        timer.start()
        watcher.start()
        recorder.wait_stopped()
    finally:
        timer.cancel()
        recorder.stop(reason=ABORTED)
        # The stop above ended the process, so both signal threads return promptly
        for thread in (timer, watcher):
            if thread.ident is not None:
                thread.join()

    if recorder.stopped_by == PLAYBACK_END and recorder.returncode and not recorder.bytes_captured:
        raise CaptureUnavailable(
            f"Audio capture failed for {asset.path} (exit {recorder.returncode}): {recorder.stderr_text}"
        )

    return recorder.payload
