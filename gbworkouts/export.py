"""Open a Gadgetbridge export given as a directory or a ZIP archive."""

import tempfile
import zipfile
from contextlib import contextmanager
from pathlib import Path, PurePosixPath

from gbworkouts.errors import ExportError


def looks_like_export(path: Path) -> bool:
    return (
        (path / "files").is_dir()
        or (path / "database").is_dir()
        or (path / "gadgetbridge.json").is_file()
    )


def _safe_member_path(root: Path, name: str) -> Path | None:
    """Destination for a ZIP member, or None if it would land outside root."""
    rel = PurePosixPath(name.replace("\\", "/"))
    if rel.is_absolute() or ".." in rel.parts or not rel.parts:
        return None
    dest = (root / Path(*rel.parts)).resolve()
    if not dest.is_relative_to(root.resolve()):
        return None
    return dest


def extract_zip(zip_path: Path, dest: Path, verbose: bool = False) -> int:
    """Extract every safe member of zip_path into dest. Returns the count of skipped members."""
    skipped = 0
    try:
        zf = zipfile.ZipFile(zip_path)
    except (zipfile.BadZipFile, OSError) as e:
        raise ExportError(f"Reading zip: {zip_path}", {"error": str(e)}) from e

    with zf:
        if verbose:
            print(f"Extracting {len(zf.infolist())} entries from {zip_path} to {dest}")
        for info in zf.infolist():
            out_path = _safe_member_path(dest, info.filename)
            if out_path is None:
                skipped += 1
                if verbose:
                    print(f"  SKIP  unsafe zip entry path: {info.filename}")
                continue
            if info.is_dir():
                out_path.mkdir(parents=True, exist_ok=True)
                continue
            out_path.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(info) as src, open(out_path, "wb") as dst:
                while chunk := src.read(1024 * 1024):
                    dst.write(chunk)
    return skipped


def _find_export_root(root: Path) -> Path:
    if looks_like_export(root):
        return root
    # Common case: the zip contains a single top-level directory
    dirs = [p for p in root.iterdir() if p.is_dir()]
    if len(dirs) == 1 and looks_like_export(dirs[0]):
        return dirs[0]
    raise ExportError(f"ZIP extracted but doesn't look like a Gadgetbridge export: {root}")


@contextmanager
def open_export(path, verbose: bool = False):
    """Yield the export root directory; ZIPs are extracted to a temp dir removed on exit."""
    path = Path(path).expanduser()
    if path.is_dir():
        if verbose:
            print(f"Using export directory {path}")
        yield path
        return

    if path.suffix.lower() != ".zip":
        raise ExportError(f"Export path must be a directory or a .zip file: {path}")
    if not path.is_file():
        raise ExportError(f"Export ZIP not found: {path}")

    with tempfile.TemporaryDirectory(prefix="gbworkouts-") as tmp:
        tmp_path = Path(tmp)
        extract_zip(path, tmp_path, verbose=verbose)
        root = _find_export_root(tmp_path)
        if verbose:
            print(f"Export ready at {root}")
        yield root


def map_gpx_to_export(export_dir, android_path: str | None) -> Path | None:
    """Map a device-side GPX path recorded in the DB to files/<basename>."""
    if not android_path:
        return None
    name = PurePosixPath(android_path.replace("\\", "/")).name
    if not name:
        return None
    return Path(export_dir) / "files" / name


def map_raw_details_to_export(export_dir, android_path: str | None) -> Path | None:
    """Map a device-side raw details path to files/rawDetails/<basename>."""
    if not android_path:
        return None
    name = PurePosixPath(android_path.replace("\\", "/")).name
    if not name:
        return None
    return Path(export_dir) / "files" / "rawDetails" / name
