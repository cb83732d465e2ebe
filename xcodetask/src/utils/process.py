import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from rich.markup import escape

from xcodetask.logger import debug, get_console
from xcodetask.src.core.errors import ToolExecutionError, ToolNotFoundError

# (tool, args) of a process receiving another process' stdout
PipeTarget = Tuple[str, Sequence[str]]


def format_command(cmd: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(part)) for part in cmd)


class ProcessRunner:
    """Runs external tools, optionally piping stdout through a second tool.

    Every stdout line is echoed to the console and handed to ``on_stdout``.
    A non-zero exit code from any process in the chain raises
    ``ToolExecutionError``.
    """

    def __init__(self, cwd: Optional[Path] = None):
        self.cwd = cwd
        self.console = get_console()

    def which(self, tool: str, required: bool = True) -> Optional[str]:
        path = shutil.which(tool)
        if not path and required:
            raise ToolNotFoundError(tool)
        debug(f"{tool} resolved to {path}")
        return path

    def exec(
        self,
        tool: str,
        args: Sequence[str],
        pipe_to: Optional[PipeTarget] = None,
        on_stdout: Optional[Callable[[str], None]] = None,
    ) -> int:
        cmd = [tool, *[str(a) for a in args]]
        shown = format_command(cmd)
        if pipe_to:
            shown += " | " + format_command([pipe_to[0], *pipe_to[1]])
        self.console.log(f"[cyan]Running:[/] {escape(shown)}")

        processes: List[subprocess.Popen] = []
        try:
            first = subprocess.Popen(
                cmd,
                cwd=self.cwd,
                stdout=subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
            processes.append(first)
            second = None
            source = first
            if pipe_to:
                second = subprocess.Popen(
                    [pipe_to[0], *[str(a) for a in pipe_to[1]]],
                    cwd=self.cwd,
                    stdin=first.stdout,
                    stdout=subprocess.PIPE,
                    encoding="utf-8",
                    errors="replace",
                    bufsize=1,
                )
                processes.append(second)
                # Let the first process receive SIGPIPE if the second one exits
                first.stdout.close()
                source = second

            with source.stdout:
                for line in source.stdout:
                    line = line.rstrip("\n")
                    self.console.out(line, highlight=False)
                    if on_stdout:
                        on_stdout(line)

            for process in reversed(processes):
                process.wait()
        finally:
            # Nothing outlives the call, even when reading or spawning failed
            for process in processes:
                if process.poll() is None:
                    process.kill()
                    process.wait()

        if first.returncode != 0:
            raise ToolExecutionError(tool, first.returncode)
        if second and second.returncode != 0:
            raise ToolExecutionError(pipe_to[0], second.returncode)
        return 0
