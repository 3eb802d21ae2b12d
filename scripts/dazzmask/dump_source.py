"""
Database Structure Sources

The contig table is built from the line-oriented output of `DBdump -rh`.
Anything that can yield those lines is a ContigTableSource:

- DBdumpSource: runs DBdump as a child process and streams its stdout
- StaticDumpSource: serves lines from memory (tests, pre-recorded dumps)

DBdump -rh output (relevant lines only):
    + R 3             total number of records
    R 1               start of record 1
    H 9 >scaffold_1   header of the current record
    L 0 0 1200        well, begin, end of the current record
"""

import os
import shlex
import shutil
import subprocess
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Iterable, Iterator, List, Protocol

from .errors import ConfigurationError, DumpParseError, DumpToolError

DEFAULT_DBDUMP = "DBdump"
DBDUMP_ENV_VAR = "DAZZMASK_DBDUMP"


class ContigTableSource(Protocol):
    def lines(self) -> Iterator[str]: ...


@dataclass
class StaticDumpSource:
    """In-memory dump; lines may or may not carry trailing newlines."""
    dump_lines: List[str]

    @classmethod
    def from_text(cls, text: str) -> "StaticDumpSource":
        return cls(text.splitlines())

    def lines(self) -> Iterator[str]:
        for line in self.dump_lines:
            yield line.rstrip("\n")


def default_dbdump() -> str:
    """DBdump executable from the environment, falling back to PATH lookup."""
    return os.environ.get(DBDUMP_ENV_VAR, DEFAULT_DBDUMP)


@dataclass
class DBdumpSource:
    """
    Stream `DBdump -rh <db>` output.

    The child's stderr is drained on a helper thread into a bounded buffer so
    a chatty child cannot block on a full pipe while stdout is consumed.
    A non-zero exit raises DumpToolError with the captured stderr. Output
    lines are decoded as UTF-8; undecodable bytes raise DumpParseError.
    """
    db_path: str
    exe: str = field(default_factory=default_dbdump)
    stderr_lines: int = 200

    def build_cmd(self) -> List[str]:
        return [self.exe, "-rh", self.db_path]

    def lines(self) -> Iterator[str]:
        if not shutil.which(self.exe):
            raise ConfigurationError(
                f"executable {self.exe!r} not found; install DAZZ_DB or set {DBDUMP_ENV_VAR}"
            )

        cmd = self.build_cmd()
        stderr_tail: Deque[str] = deque(maxlen=self.stderr_lines)

        proc = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
        assert proc.stdout is not None
        assert proc.stderr is not None

        def _drain(stream: Iterable[bytes], tail: Deque[str]) -> None:
            for raw in stream:
                tail.append(raw.decode(errors="replace"))

        t_err = threading.Thread(target=_drain, args=(proc.stderr, stderr_tail), daemon=True)
        t_err.start()

        completed = False
        try:
            for line_number, raw in enumerate(proc.stdout, start=1):
                try:
                    line = raw.decode()
                except UnicodeDecodeError as e:
                    raise DumpParseError(f"undecodable DBdump output: {e.reason}", line_number) from e
                yield line.rstrip("\n")
            completed = True
        finally:
            proc.stdout.close()
            if not completed:
                # consumer stopped early (parse error); do not leave a zombie
                proc.kill()
            rc = proc.wait()
            t_err.join()
            proc.stderr.close()

        if rc != 0:
            raise DumpToolError(cmd, rc, "".join(stderr_tail))

    def __str__(self) -> str:
        return shlex.join(self.build_cmd())
