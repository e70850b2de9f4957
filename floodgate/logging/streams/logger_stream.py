import asyncio
import datetime
import io
import os
import pathlib
import sys
import threading
from collections import defaultdict
from typing import (
    Callable,
    Dict,
    TypeVar,
)

import msgspec

from floodgate.logging.config.logging_config import LoggingConfig
from floodgate.logging.config.stream_type import StreamType
from floodgate.logging.models import Entry, Log

T = TypeVar('T', bound=Entry)


DEFAULT_TEMPLATE = "{timestamp} - {level} - {thread_id} - {filename}:{function_name}.{line_number} - {message}"
ERROR_TEMPLATE = "{timestamp} - {level} - {thread_id}.{filename}:{function_name}.{line_number} - {error}"


class LoggerStream:
    def __init__(
        self,
        name: str | None = None,
        template: str | None = None,
        filename: str | None = None,
        directory: str | None = None,
    ) -> None:
        if name is None:
            name = "default"

        self._name = name
        self._default_template = template
        self._default_logfile = filename
        self._default_log_directory = directory

        self._init_lock = asyncio.Lock()
        self._stream_lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None

        self._files: Dict[str, io.BufferedRandom] = {}
        self._file_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._cwd: str | None = None
        self._default_logfile_path: str | None = None

        self._config = LoggingConfig()
        self._initialized: bool = False
        self._scheduled: set[asyncio.Future] = set()

    @property
    def name(self):
        return self._name

    @property
    def pending(self):
        return len(self._scheduled)

    async def initialize(self):

        async with self._init_lock:

            if self._initialized:
                return

            if self._loop is None:
                self._loop = asyncio.get_running_loop()

            if self._cwd is None:
                self._cwd = await self._loop.run_in_executor(
                    None,
                    os.getcwd,
                )

            self._initialized = True

    async def open_file(
        self,
        filename: str,
        directory: str | None = None,
        is_default: bool = False,
    ):
        await self.initialize()

        logfile_path = self._to_logfile_path(filename, directory=directory)

        async with self._file_locks[logfile_path]:
            logfile = self._files.get(logfile_path)
            if logfile is None or logfile.closed:
                await self._loop.run_in_executor(
                    None,
                    self._open_file,
                    logfile_path,
                )

        if is_default:
            self._default_logfile_path = logfile_path

        return logfile_path

    def _open_file(
        self,
        logfile_path: str,
    ):
        resolved_path = pathlib.Path(logfile_path).absolute().resolve()
        logfile_directory = resolved_path.parent

        logfile_directory.mkdir(parents=True, exist_ok=True)
        resolved_path.touch(exist_ok=True)

        self._files[logfile_path] = open(str(resolved_path), "ab+")

    async def _close_file(self, logfile_path: str):
        async with self._file_locks[logfile_path]:
            await self._loop.run_in_executor(
                None,
                self._close_file_at_path,
                logfile_path,
            )

    def _close_file_at_path(self, logfile_path: str):
        if (
            logfile := self._files.get(logfile_path)
        ) and logfile.closed is False:
            logfile.close()

    def _to_logfile_path(
        self,
        filename: str,
        directory: str | None = None,
    ):
        filename_path = pathlib.Path(filename)

        if filename_path.suffix != ".json":
            raise ValueError(f"Log file {filename} must be a JSON file.")

        if directory is None and self._config.directory:
            directory = self._config.directory

        elif directory is None:
            directory = self._cwd

        return os.path.join(directory, filename_path.name)

    def schedule(
        self,
        entry: T | Log[T],
        template: str | None = None,
        path: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        log_entry = entry.entry if isinstance(entry, Log) else entry
        if self._config.enabled(self._name, log_entry.level) is False:
            return None

        if not isinstance(entry, Log):
            entry = self._to_log(entry, sys._getframe(1))

        task = asyncio.ensure_future(
            self.log(
                entry,
                template=template,
                path=path,
                filter=filter,
            )
        )

        self._scheduled.add(task)
        task.add_done_callback(self._scheduled.discard)

        return task

    async def log(
        self,
        entry: T | Log[T],
        template: str | None = None,
        path: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        filename: str | None = None
        directory: str | None = None

        if path:
            logfile_path = pathlib.Path(path)
            is_logfile = len(logfile_path.suffix) > 0

            filename = logfile_path.name if is_logfile else None
            directory = str(logfile_path.parent.absolute()) if is_logfile else str(logfile_path.absolute())

        if template is None:
            template = self._default_template

        if filename is None:
            filename = self._default_logfile

        if directory is None:
            directory = self._default_log_directory

        if not isinstance(entry, Log):
            entry = self._to_log(entry, sys._getframe(1))

        if filename or directory:
            await self._log_to_file(
                entry,
                filename=filename,
                directory=directory,
                filter=filter,
            )

        else:
            await self._log(
                entry,
                template=template,
                filter=filter,
            )

    async def _log(
        self,
        log: Log[T],
        template: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        entry = log.entry

        if self._config.enabled(self._name, entry.level) is False:
            return

        if filter and filter(entry) is False:
            return

        if template is None:
            template = DEFAULT_TEMPLATE

        context = {
            "filename": log.filename,
            "function_name": log.function_name,
            "line_number": log.line_number,
            "thread_id": log.thread_id,
            "timestamp": log.timestamp,
        }

        await self.initialize()

        try:
            async with self._stream_lock:
                await self._loop.run_in_executor(
                    None,
                    self._write_to_stream,
                    entry.to_template(template, context=context),
                    self._config.output,
                )

        except Exception as err:
            self._report_write_error(log, err)

    def _write_to_stream(self, line: str, output: StreamType):
        stream = sys.stdout if output == StreamType.STDOUT else sys.stderr

        stream.write(line + "\n")
        stream.flush()

    async def _log_to_file(
        self,
        log: Log[T],
        filename: str | None = None,
        directory: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        entry = log.entry

        if self._config.enabled(self._name, entry.level) is False:
            return

        if filter and filter(entry) is False:
            return

        await self.initialize()

        try:
            if filename is None and self._default_logfile_path:
                logfile_path = self._default_logfile_path

            else:
                logfile_path = self._to_logfile_path(
                    filename or "logs.json",
                    directory=directory,
                )

            if self._files.get(logfile_path) is None or self._files[logfile_path].closed:
                await self.open_file(
                    filename or "logs.json",
                    directory=directory,
                )

            async with self._file_locks[logfile_path]:
                await self._loop.run_in_executor(
                    None,
                    self._write_to_file,
                    log,
                    logfile_path,
                )

        except Exception as err:
            self._report_write_error(log, err)

    def _write_to_file(
        self,
        log: Log,
        logfile_path: str,
    ):
        if (
            logfile := self._files.get(logfile_path)
        ) and (
            logfile.closed is False
        ):
            logfile.write(msgspec.json.encode(log) + b"\n")
            logfile.flush()

    def _report_write_error(self, log: Log, err: Exception):
        try:
            sys.stderr.write(
                log.entry.to_template(
                    ERROR_TEMPLATE,
                    context={
                        "filename": log.filename,
                        "function_name": log.function_name,
                        "line_number": log.line_number,
                        "error": str(err),
                        "thread_id": threading.get_native_id(),
                        "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
                    },
                ) + "\n"
            )

        except (OSError, ValueError):
            # stderr itself is gone, nothing left to report to
            pass

    def _to_log(self, entry: T, frame):
        code = frame.f_code

        return Log(
            entry=entry,
            filename=code.co_filename,
            function_name=code.co_name,
            line_number=frame.f_lineno,
        )

    async def close(self):
        if self._scheduled:
            await asyncio.gather(*list(self._scheduled), return_exceptions=True)

        if self._loop is not None:
            await asyncio.gather(
                *[self._close_file(logfile_path) for logfile_path in list(self._files)]
            )

        self._files.clear()
        self._initialized = False

