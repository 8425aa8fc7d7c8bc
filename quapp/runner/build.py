"""``quapp build``: production build packaged as ``dist.qpp``.

Runs the project's ``npm run build``, compresses ``dist/`` into a single ZIP
archive at maximum compression and removes ``dist/`` afterwards.

Usage::

    python -m quapp.runner.build
"""

from __future__ import annotations

import asyncio
import os
import shutil
import sys
import time
import zipfile
from pathlib import Path

from quapp.utils import (
    console,
    format_duration,
    format_size,
    print_error,
    print_info,
    print_success,
    print_warning,
    run_command,
)

DIST_DIRNAME = "dist"
ARCHIVE_NAME = "dist.qpp"
COMPRESSION_LEVEL = 9


class BuildError(Exception):
    """Raised when the build step fails or produces no output."""


class ArchiveError(Exception):
    """Raised when the archive cannot be written."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


def archive_directory(source: str | Path, dest: str | Path) -> int:
    """Compress the contents of *source* into the ZIP file *dest*.

    Entries are stored relative to *source*; *source* itself gets no entry.
    Sub-directories get their own entries so empty ones survive.  A file that
    disappears while the archive is written is skipped with a warning.

    Returns:
        Number of files written.

    Raises:
        ArchiveError: If *dest* cannot be written.
    """
    source_dir = Path(source)
    written = 0
    try:
        archive = zipfile.ZipFile(
            dest, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=COMPRESSION_LEVEL
        )
    except OSError as exc:
        raise ArchiveError(f"Failed to write output file: {exc}", path=Path(dest)) from exc

    try:
        with archive:
            for dirpath, dirnames, filenames in os.walk(source_dir):
                dirnames.sort()
                current = Path(dirpath)
                for dirname in dirnames:
                    relative = (current / dirname).relative_to(source_dir).as_posix()
                    archive.writestr(zipfile.ZipInfo(f"{relative}/"), b"")
                for filename in sorted(filenames):
                    path = current / filename
                    relative = path.relative_to(source_dir).as_posix()
                    try:
                        archive.write(path, relative)
                    except FileNotFoundError as exc:
                        print_warning(f"⚠️ Archive warning: {exc}")
                        continue
                    written += 1
    except OSError as exc:
        raise ArchiveError(f"Archiving failed: {exc}", path=Path(dest)) from exc
    return written


class BuildPackager:
    """Builds the project in *root* and packages the output.

    Attributes:
        root: Project directory.
        dist_dir: Build output directory (``<root>/dist``).
        output_path: Archive path (``<root>/dist.qpp``).
    """

    def __init__(self, root: str | Path | None = None) -> None:
        self.root = Path(root) if root else Path.cwd()
        self.dist_dir = self.root / DIST_DIRNAME
        self.output_path = self.root / ARCHIVE_NAME

    async def run(self) -> Path:
        """Build, archive and clean up.

        Returns:
            Path to the written archive.

        Raises:
            BuildError: If the build fails or ``dist/`` is missing.
            ArchiveError: If the archive cannot be written.
        """
        print_info("\n📦 Starting production build...")
        started = time.monotonic()

        await self.build()
        if not self.dist_dir.is_dir():
            raise BuildError(f"Build folder '{DIST_DIRNAME}/' not found!")

        count = await asyncio.to_thread(archive_directory, self.dist_dir, self.output_path)
        size = self.output_path.stat().st_size
        print_success(f"\n✅ Project built and compressed → {ARCHIVE_NAME}")
        console.print(
            f"[dim]   {count} files, {format_size(size)}, "
            f"{format_duration(time.monotonic() - started)}[/dim]"
        )

        await self.remove_dist()
        return self.output_path

    async def build(self) -> None:
        """Run ``npm run build`` with the console attached."""
        npm = shutil.which("npm") or "npm"
        try:
            returncode, _, _ = await run_command(
                [npm, "run", "build"], cwd=self.root, capture=False
            )
        except OSError as exc:
            raise BuildError(
                "Build process failed. Please check your build script."
            ) from exc
        if returncode != 0:
            raise BuildError("Build process failed. Please check your build script.")

    async def remove_dist(self) -> None:
        try:
            await asyncio.to_thread(shutil.rmtree, self.dist_dir)
        except OSError as exc:
            print_warning(f"⚠️ Could not remove {DIST_DIRNAME}/: {exc}")


def main() -> None:
    """Entry point for ``python -m quapp.runner.build``."""
    packager = BuildPackager()
    try:
        asyncio.run(packager.run())
    except (BuildError, ArchiveError) as exc:
        print_error(f"❌ {exc}")
        sys.exit(1)
    except Exception as exc:
        print_error(f"\n❌ Unexpected failure: {exc}")
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
