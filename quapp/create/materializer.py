"""Project materialisation: template fetch and manifest personalisation.

A template identifier has the form ``owner/repo[/sub/dir][#ref]``.  The
fetcher downloads the repository archive for ``ref`` from GitHub, extracts
only ``sub/dir`` into the destination, and never touches anything outside
it.  Once the files are on disk :func:`patch_manifest` renames the package.
"""

from __future__ import annotations

import asyncio
import io
import json
import shutil
import tarfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import httpx

from quapp.utils import console

MANIFEST_FILENAME = "package.json"


class FetchError(Exception):
    """Raised when a template cannot be downloaded or extracted."""

    def __init__(self, message: str, url: str = ""):
        self.url = url
        super().__init__(message)


class ManifestError(Exception):
    """Raised when the generated manifest is missing or unreadable."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


@dataclass(frozen=True)
class TemplateSource:
    """A parsed template identifier."""

    owner: str
    repo: str
    subdir: str = ""
    ref: str = "HEAD"

    @classmethod
    def parse(cls, template_id: str) -> "TemplateSource":
        """Parse ``owner/repo[/sub/dir][#ref]``.

        Raises:
            FetchError: If the identifier has no owner or repository part.
        """
        location, _, ref = template_id.partition("#")
        parts = [part for part in location.strip().strip("/").split("/") if part]
        if len(parts) < 2:
            raise FetchError(f"could not parse template id {template_id!r}")
        return cls(
            owner=parts[0],
            repo=parts[1],
            subdir="/".join(parts[2:]),
            ref=ref.strip() or "HEAD",
        )

    @property
    def archive_url(self) -> str:
        return f"https://github.com/{self.owner}/{self.repo}/archive/{self.ref}.tar.gz"


def _is_non_empty_dir(path: Path) -> bool:
    return path.is_dir() and any(path.iterdir())


def _extract_subdir(archive: bytes, subdir: str, dest: Path) -> int:
    """Extract the files under *subdir* of a GitHub tarball into *dest*.

    GitHub archives wrap everything in a single ``<repo>-<ref>/`` directory,
    which is dropped.  Symlinks and special files are skipped.

    Returns:
        The number of archive members written.

    Raises:
        FetchError: If the archive is corrupt, contains an unsafe path, or
            has nothing under *subdir*.
    """
    try:
        with tarfile.open(fileobj=io.BytesIO(archive), mode="r:gz") as tar:
            selected: list[tuple[tarfile.TarInfo, PurePosixPath]] = []
            for member in tar.getmembers():
                parts = PurePosixPath(member.name).parts
                if len(parts) < 2:
                    continue
                relative = PurePosixPath(*parts[1:])
                if subdir:
                    try:
                        relative = relative.relative_to(subdir)
                    except ValueError:
                        continue
                if not relative.parts:
                    continue
                if relative.is_absolute() or ".." in relative.parts:
                    raise FetchError(f"unsafe path in template archive: {member.name}")
                selected.append((member, relative))

            if not selected:
                raise FetchError(f"could not find directory {subdir or '/'}")

            dest.mkdir(parents=True, exist_ok=True)
            for member, relative in selected:
                target = dest.joinpath(*relative.parts)
                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                elif member.isfile():
                    target.parent.mkdir(parents=True, exist_ok=True)
                    source = tar.extractfile(member)
                    if source is None:
                        continue
                    with source, target.open("wb") as handle:
                        shutil.copyfileobj(source, handle)
                    if member.mode & 0o111:
                        target.chmod(0o755)
    except tarfile.TarError as exc:
        raise FetchError(f"invalid template archive: {exc}") from exc

    return len(selected)


class TemplateFetcher:
    """Downloads a template and writes it into a project directory.

    Archives are always downloaded fresh; there is no local cache.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ) -> None:
        self._client = client
        self.timeout = timeout

    async def fetch(
        self,
        template_id: str,
        dest: str | Path,
        *,
        cache: bool = False,
        force: bool = False,
    ) -> Path:
        """Materialise *template_id* into *dest*.

        Args:
            template_id: ``owner/repo[/sub/dir][#ref]``.
            dest: Target directory (created if needed).
            cache: Accepted for call compatibility; caching is never used.
            force: Write into *dest* even when it already has files.

        Returns:
            The destination path.

        Raises:
            FetchError: If *dest* is not empty (without *force*), the download
                fails, or the archive does not contain the template.
        """
        source = TemplateSource.parse(template_id)
        target = Path(dest)

        if _is_non_empty_dir(target) and not force:
            raise FetchError(
                "destination directory is not empty, aborting. Use --force to override"
            )

        archive = await self._download(source)
        count = await asyncio.to_thread(_extract_subdir, archive, source.subdir, target)
        console.print(f"[dim]  {count} entries written to {target}[/dim]")
        return target

    async def _download(self, source: TemplateSource) -> bytes:
        url = source.archive_url
        owns_client = self._client is None
        client = self._client or httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        try:
            response = await client.get(url, follow_redirects=True)
        except httpx.HTTPError as exc:
            raise FetchError(f"could not download {url}: {exc}", url=url) from exc
        finally:
            if owns_client:
                await client.aclose()

        if response.status_code != 200:
            raise FetchError(
                f"could not find {source.owner}/{source.repo}#{source.ref} "
                f"(GitHub returned {response.status_code})",
                url=url,
            )
        return response.content


def patch_manifest(project_dir: str | Path, name: str) -> Path:
    """Set the ``name`` field of the project's ``package.json``.

    Every other key keeps its value and position.  The file is rewritten with
    2-space indentation.

    Returns:
        Path to the rewritten manifest.

    Raises:
        ManifestError: If the manifest is missing, is not valid JSON, or is
            not a JSON object.
    """
    path = Path(project_dir) / MANIFEST_FILENAME
    if not path.is_file():
        raise ManifestError(f"{MANIFEST_FILENAME} not found!", path=path)

    try:
        manifest = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ManifestError(f"{MANIFEST_FILENAME} is not valid JSON: {exc}", path=path) from exc
    if not isinstance(manifest, dict):
        raise ManifestError(f"{MANIFEST_FILENAME} is not a JSON object", path=path)

    manifest["name"] = name
    path.write_text(json.dumps(manifest, indent=2, ensure_ascii=False), encoding="utf-8")
    return path
