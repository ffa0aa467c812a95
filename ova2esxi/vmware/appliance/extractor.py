# SPDX-License-Identifier: LGPL-3.0-or-later
# ova2esxi/vmware/appliance/extractor.py
from __future__ import annotations

import logging
import os
import tarfile
from pathlib import Path, PurePosixPath
from typing import IO, Any, List, Optional, Tuple

from ...core.exceptions import ArchiveError
from ...core.utils import U
from ..http_progress_reporters import NoopProgressReporter, ProgressReporter, create_progress_reporter
from .models import ApplianceDescriptor, FileRole, OvfDescriptor

_CHUNK = 1024 * 1024


class OVA:
    @staticmethod
    def extract_appliance(
        logger: logging.Logger,
        directory: Path,
        filename: str,
        *,
        progress: Optional[Any] = None,
    ) -> ApplianceDescriptor:
        """
        Unpack `directory/filename` (a tar stream) into `directory` and
        describe what came out.

        The archive is read sequentially, one member at a time, so it is never
        seeked. Directory members are created when missing (failures are
        logged, not fatal). Regular files keep their tar mode. Links, devices
        and FIFOs are skipped. Extracted files are left in place.

        `progress` is an options object understood by create_progress_reporter
        (HTTPTransferOptions); None keeps extraction silent.
        """
        directory = Path(directory)
        archive = directory / filename
        logger.info("📦 Extracting %s into %s", archive, directory)

        try:
            total = archive.stat().st_size
            tar = tarfile.open(archive, mode="r|*")
        except (OSError, tarfile.TarError) as e:
            raise ArchiveError(code=2, msg=f"Cannot open appliance archive {archive}: {e}", cause=e) from e

        reporter: ProgressReporter = (
            create_progress_reporter(progress, filename, logger) if progress is not None else NoopProgressReporter()
        )
        reporter.start(f"Extracting {filename}", total)
        files = 0
        skipped = 0
        try:
            with tar:
                for member in tar:
                    status = OVA._extract_member(logger, tar, member, directory, reporter)
                    if status == "file":
                        files += 1
                    elif status == "skipped":
                        skipped += 1
        except tarfile.TarError as e:
            raise ArchiveError(code=2, msg=f"Corrupt appliance archive {archive}: {e}", cause=e) from e
        finally:
            reporter.finish()

        if skipped:
            logger.warning("⚠️  Skipped %d special tar members (links/devices/fifos)", skipped)
        logger.debug("Extracted %d files from %s", files, filename)

        return OVA.describe_directory(logger, directory)

    @staticmethod
    def describe_directory(logger: logging.Logger, directory: Path) -> ApplianceDescriptor:
        """
        Classify the direct entries of `directory`.

        Exactly one descriptor must be present; disk and optical images are
        collected in sorted listing order.
        """
        directory = Path(directory)
        try:
            names = sorted(os.listdir(directory))
        except OSError as e:
            raise ArchiveError(code=2, msg=f"Cannot list extraction directory {directory}: {e}", cause=e) from e

        descriptors: List[str] = []
        disks: List[str] = []
        for name in names:
            if not (directory / name).is_file():
                continue
            role = FileRole.classify(name)
            if role == FileRole.DESCRIPTOR:
                descriptors.append(name)
            elif role.is_image:
                disks.append(name)

        if not descriptors:
            raise ArchiveError(code=2, msg=f"No OVF descriptor found in {directory}")
        if len(descriptors) > 1:
            raise ArchiveError(
                code=2,
                msg=f"Multiple OVF descriptors found in {directory}",
                context={"descriptors": descriptors},
            )

        ovf_name = descriptors[0]
        try:
            data = (directory / ovf_name).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ArchiveError(code=2, msg=f"Cannot read OVF descriptor {ovf_name}: {e}", cause=e) from e

        logger.info("📄 Descriptor: %s, images: %s", ovf_name, ", ".join(disks) or "(none)")
        return ApplianceDescriptor(
            ovf=OvfDescriptor(file_name=ovf_name, data=data),
            directory=directory,
            disks=tuple(disks),
        )

    # Per-member handling

    @staticmethod
    def _extract_member(
        logger: logging.Logger,
        tar: tarfile.TarFile,
        member: tarfile.TarInfo,
        outdir: Path,
        reporter: ProgressReporter,
    ) -> str:
        if member.issym() or member.islnk() or member.ischr() or member.isblk() or member.isfifo():
            logger.debug("Skipping special tar member %r", member.name)
            return "skipped"

        if member.isdir():
            # "." is the extraction root itself (tar -C dir .).
            if member.name.replace("\\", "/").strip("/") in ("", "."):
                return "dir"
            try:
                target = OVA._safe_out_path(outdir, member.name)
                if not target.exists():
                    target.mkdir(mode=0o755, parents=True)
            except (ArchiveError, OSError) as e:
                logger.warning("⚠️  Could not create directory %r: %s", member.name, e)
            return "dir"

        if not member.isreg():
            return "skipped"

        target = OVA._safe_out_path(outdir, member.name)
        src = tar.extractfile(member)
        if src is None:
            return "skipped"
        wrote, _ = OVA._write_file(target, src, member.mode & 0o7777, reporter)
        logger.debug("Extracted %s (%s, mode %o)", member.name, U.human_bytes(wrote), member.mode & 0o7777)
        return "file"

    @staticmethod
    def _write_file(target: Path, src: IO[bytes], mode: int, reporter: ProgressReporter) -> Tuple[int, Path]:
        wrote = 0
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(target, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, mode)
            # os.open honours the umask; the tar mode is authoritative.
            os.fchmod(fd, mode)
            with os.fdopen(fd, "wb") as out:
                while True:
                    chunk = src.read(_CHUNK)
                    if not chunk:
                        break
                    out.write(chunk)
                    wrote += len(chunk)
                    reporter.update(len(chunk))
        except OSError as e:
            raise ArchiveError(code=2, msg=f"Failed to extract {target.name}: {e}", cause=e) from e
        return wrote, target

    # Safe path helpers

    @staticmethod
    def _clean_posix_relpath(name: str) -> PurePosixPath:
        """
        Normalize a tar member name to a relative POSIX path.

        Absolute names and '..' segments are rejected; '.' segments dropped.
        """
        raw = (name or "").replace("\\", "/")
        if raw.startswith("/"):
            raise ArchiveError(code=2, msg=f"Blocked absolute path in archive: {name!r}")

        parts: List[str] = []
        for part in PurePosixPath(raw).parts:
            if part in ("", "."):
                continue
            if part == "..":
                raise ArchiveError(code=2, msg=f"Blocked '..' in archive path: {name!r}")
            parts.append(part)

        if not parts:
            raise ArchiveError(code=2, msg=f"Empty/invalid archive path: {name!r}")
        return PurePosixPath(*parts)

    @staticmethod
    def _safe_out_path(outdir: Path, rel: str) -> Path:
        outdir_r = Path(outdir).resolve()
        pp = OVA._clean_posix_relpath(rel)
        target = (outdir_r / Path(*pp.parts)).resolve()
        if target != outdir_r and outdir_r not in target.parents:
            raise ArchiveError(code=2, msg=f"Blocked path traversal: {rel!r}")
        return target


def extract_appliance(logger: logging.Logger, directory: Path, filename: str, **kw: Any) -> ApplianceDescriptor:
    return OVA.extract_appliance(logger, directory, filename, **kw)
