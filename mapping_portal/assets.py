"""Front-end asset assembly.

Concatenates the CSS and JavaScript sources of a front-end project into
single bundles and compiles its Closure templates (``*.soy``) with an
external compiler, recompiling only when a source is newer than the
compiled output.

Source layout under ``source_dir``::

    external/*.{css,js}     third-party code, emitted first
    <project>/*.{css,js,soy}
    *.{css,js,soy}          shared code, emitted last
"""

import asyncio
import json
import logging
import shlex
from dataclasses import dataclass
from pathlib import Path

from mapping_portal.exceptions import AssetBuildError, NotFoundError
from mapping_portal.settings import Settings

logger = logging.getLogger(__name__)

BUNDLE_KINDS = ("css", "js")
TEMPLATE_KIND = "soy"
ASSET_KINDS = (*BUNDLE_KINDS, TEMPLATE_KIND)

MEDIA_TYPES = {
    "css": "text/css",
    "js": "application/javascript",
    "soy": "application/javascript",
}


@dataclass(frozen=True, slots=True)
class SourceSet:
    """Files of one kind, in emission order, and their newest mtime."""

    files: list[Path]
    newest_mtime_ns: int


def collect_sources(directory: Path, extension: str) -> SourceSet:
    """List the ``*.<extension>`` files of a directory, sorted by name.

    Raises:
        AssetBuildError: If the directory cannot be read
    """
    try:
        files = sorted(
            p for p in directory.iterdir() if p.is_file() and p.suffix == f".{extension}"
        )
        newest = max((p.stat().st_mtime_ns for p in files), default=0)
    except OSError as e:
        raise AssetBuildError(f"Could not open directory {directory}") from e
    return SourceSet(files=files, newest_mtime_ns=newest)


def render_error(kind: str, message: str) -> str:
    """Format a build failure as a stylesheet or script that shows it.

    The browser loading the broken bundle displays the message instead of
    failing silently.
    """
    if kind == "css":
        escaped = (
            message.replace("\\", "\\\\")
            .replace("\r\n", "\\00000A")
            .replace("\r", "\\00000A")
            .replace("\n", "\\00000A")
            .replace('"', '\\"')
        )
        return (
            "body { background-color: #ff6666; color: black; }\n"
            "body:after { position: absolute; top: 30px; white-space: pre-wrap; "
            f'content: "{escaped}"; }}\n'
        )
    html = message.strip().replace("\n", "<br/>")
    return (
        "document.open();"
        "document.write(\"<html><body style='background-color: red; color: black;'><pre>\"+"
        f"{json.dumps(html)}"
        '+"</pre></body></html>");\n'
    )


class AssetAssembler:
    """Builds the bundles of the configured front-end projects."""

    def __init__(
        self,
        source_dir: Path | str,
        output_dir: Path | str,
        projects: list[str],
        *,
        compiler_command: str,
        compiler_timeout: float = 120,
    ):
        self.source_dir = Path(source_dir)
        self.output_dir = Path(output_dir)
        self.projects = [p.lower() for p in projects]
        self.compiler_command = compiler_command
        self.compiler_timeout = compiler_timeout
        self._compile_locks: dict[str, asyncio.Lock] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "AssetAssembler":
        return cls(
            settings.asset_source_dir,
            settings.asset_output_dir,
            settings.asset_project_names,
            compiler_command=settings.template_compiler_command,
            compiler_timeout=settings.template_compiler_timeout_seconds,
        )

    def check(self, project: str, kind: str) -> tuple[str, str]:
        """Normalize and validate a (project, kind) pair.

        Raises:
            NotFoundError: Unknown project or asset kind
        """
        project, kind = project.lower(), kind.lower()
        if project not in self.projects:
            raise NotFoundError(f"Unknown project '{project}'")
        if kind not in ASSET_KINDS:
            raise NotFoundError(f"Unknown asset type '{kind}'")
        return project, kind

    def bundle(self, project: str, kind: str) -> str:
        """Concatenate the CSS or JS sources of a project.

        Order: ``external/``, the project directory, then the source root;
        each directory sorted by file name; every file followed by a newline.

        Raises:
            NotFoundError: Unknown project or a kind other than css/js
            AssetBuildError: Unreadable source directory or file
        """
        project, kind = self.check(project, kind)
        if kind not in BUNDLE_KINDS:
            raise NotFoundError(f"'{kind}' assets are compiled, not bundled")

        parts: list[str] = []
        for directory in (self.source_dir / "external", self.source_dir / project, self.source_dir):
            for path in collect_sources(directory, kind).files:
                try:
                    parts.append(path.read_text(encoding="utf-8"))
                except OSError as e:
                    raise AssetBuildError(f"Could not read {path}") from e
                parts.append("\n")
        return "".join(parts)

    def compiled_path(self, project: str) -> Path:
        return self.output_dir / f"compiled.{project}.soy.js"

    def build_command(self, output: Path, sources: list[Path]) -> list[str]:
        """Tokenize the compiler command and fill in its placeholders."""
        joined = ",".join(str(p) for p in sources)
        return [
            token.replace("{output}", str(output)).replace("{sources}", joined)
            for token in shlex.split(self.compiler_command)
        ]

    async def compile_templates(self, project: str) -> str:
        """Return the compiled templates of a project, recompiling if stale.

        Templates come from the source root and the project directory. The
        compiler runs only when the output is missing or not newer than the
        newest template.

        Raises:
            NotFoundError: Unknown project
            AssetBuildError: No templates, compiler failure or timeout
        """
        project, _ = self.check(project, TEMPLATE_KIND)
        shared = collect_sources(self.source_dir, TEMPLATE_KIND)
        own = collect_sources(self.source_dir / project, TEMPLATE_KIND)
        sources = shared.files + own.files
        if not sources:
            raise AssetBuildError("No .soy files found")

        output = self.compiled_path(project)
        lock = self._compile_locks.setdefault(project, asyncio.Lock())
        async with lock:
            newest = max(shared.newest_mtime_ns, own.newest_mtime_ns)
            if not output.exists() or output.stat().st_mtime_ns <= newest:
                await self._run_compiler(output, sources)
            else:
                logger.debug("Templates of %s are up to date", project)

        try:
            return output.read_text(encoding="utf-8")
        except OSError as e:
            raise AssetBuildError(f"Compiled templates missing at {output}") from e

    async def _run_compiler(self, output: Path, sources: list[Path]) -> None:
        output.parent.mkdir(parents=True, exist_ok=True)
        cmd = self.build_command(output, sources)
        logger.info("Compiling %d templates into %s", len(sources), output)

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise AssetBuildError(f"Template compiler not runnable: {cmd[0]}") from e

        try:
            stdout_bytes, _ = await asyncio.wait_for(
                process.communicate(), timeout=self.compiler_timeout
            )
        except TimeoutError as e:
            process.kill()
            await process.wait()
            raise AssetBuildError(
                f"Template compiler timed out after {self.compiler_timeout}s"
            ) from e

        if process.returncode != 0:
            log = stdout_bytes.decode("utf-8", errors="replace")
            raise AssetBuildError(
                f"{shlex.join(cmd)}\n\nResult: {process.returncode}\n\n{log}"
            )

    async def build(self, project: str, kind: str) -> str:
        """Produce one asset: a bundle for css/js, compiled templates for soy."""
        project, kind = self.check(project, kind)
        if kind == TEMPLATE_KIND:
            return await self.compile_templates(project)
        return await asyncio.to_thread(self.bundle, project, kind)

    async def write_bundles(self, project: str) -> list[Path]:
        """Write every asset of a project to the output directory.

        Returns:
            Paths written (compiled templates are included when present)
        """
        project, _ = self.check(project, "css")
        self.output_dir.mkdir(parents=True, exist_ok=True)
        written: list[Path] = []
        for kind in BUNDLE_KINDS:
            path = self.output_dir / f"{project}.{kind}"
            path.write_text(await self.build(project, kind), encoding="utf-8")
            written.append(path)
        if collect_sources(self.source_dir, TEMPLATE_KIND).files or collect_sources(
            self.source_dir / project, TEMPLATE_KIND
        ).files:
            await self.compile_templates(project)
            written.append(self.compiled_path(project))
        return written
