# barswax/core/output.py
"""
Delivers rendered templates to stdout or to a file.
"""
import sys
from pathlib import Path
from typing import Optional
import structlog

from barswax.core.wax import RenderResult
from barswax.exceptions import OutputError, TemplateError

log = structlog.get_logger(__name__)


def write_to_stdout(text_content: str):
    try:
        sys.stdout.write(text_content)
        sys.stdout.flush()
    except UnicodeEncodeError as e:
        log.warning("stdout_write_failed_trying_binary_fallback", error=str(e))
        sys.stdout.buffer.write(text_content.encode("utf-8", errors="replace"))
        sys.stdout.buffer.flush()


def write_to_file(output_file_path: Path, text_content: str):
    # missing parent directories are created, so `-o build/site/index.html` works.
    log.info("writing_output_to_file", path=str(output_file_path))
    try:
        output_file_path.parent.mkdir(parents=True, exist_ok=True)
        output_file_path.write_text(text_content, encoding="utf-8")
    except OSError as e:
        raise OutputError(f"failed to write to file '{output_file_path}': {e}") from e


def deliver(result: RenderResult, destination: Optional[Path] = None) -> None:
    """Writes a successful render to `destination`, or stdout when it is None.

    A failed render raises TemplateError carrying the original error as cause.
    """
    if not result.ok:
        raise TemplateError(f"render failed: {result.error}") from result.error
    if destination is None:
        write_to_stdout(result.output)
    else:
        write_to_file(Path(destination), result.output)
