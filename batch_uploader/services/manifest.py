"""Load upload descriptors from a JSON manifest file."""
import json
from pathlib import Path
from typing import List

from ..models import UploadDescriptor


class ManifestError(ValueError):
    """Raised when a manifest cannot be read or has invalid entries."""


def load_manifest(path: Path) -> List[UploadDescriptor]:
    """
    Read a manifest and return its descriptors in file order.

    The manifest is either a JSON array of entries or an object with a
    ``files`` array. Relative file paths resolve against the manifest's
    directory.

    Example entry:
        {"path": "build/app.js", "url": "https://...", "contentType": "text/javascript"}
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ManifestError(f"could not read manifest {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ManifestError(f"manifest {path} is not valid JSON: {exc}") from exc

    if isinstance(data, dict):
        data = data.get("files")
    if not isinstance(data, list):
        raise ManifestError(f"manifest {path} must be a list of files or have a 'files' list")

    base_dir = path.parent
    descriptors = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ManifestError(f"entry {index} is not an object")
        try:
            descriptors.append(UploadDescriptor.from_dict(entry, base_dir=base_dir))
        except KeyError as exc:
            raise ManifestError(f"entry {index} is missing {exc}") from exc
        except (OSError, ValueError) as exc:
            raise ManifestError(f"entry {index} is invalid: {exc}") from exc
    return descriptors
