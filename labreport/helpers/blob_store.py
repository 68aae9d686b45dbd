from pathlib import Path
from typing import Dict, Optional, Protocol, Tuple

from labreport.commons.errors import DownloadError


class BlobStore(Protocol):
    def download(self, bucket: str, key: str) -> bytes: ...


class FileBlobStore:
    """Serve objects from <root>/<bucket>/<key> on local disk."""

    def __init__(self, root: str):
        self.root = Path(root)

    def _resolve(self, bucket: str, key: str) -> Path:
        base = (self.root / bucket).resolve()
        p = (base / key).resolve()
        # no se permite salir del bucket con "../"
        if base != p and base not in p.parents:
            raise DownloadError(f"Object key escapes bucket: {key}")
        return p

    def download(self, bucket: str, key: str) -> bytes:
        p = self._resolve(bucket, key)
        try:
            return p.read_bytes()
        except FileNotFoundError:
            raise DownloadError(f"Object not found: {bucket}/{key}")
        except OSError as ex:
            raise DownloadError(f"Could not read {bucket}/{key}: {ex}") from ex

    def upload(self, bucket: str, key: str, data: bytes) -> str:
        p = self._resolve(bucket, key)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)
        return str(p)


class MemoryBlobStore:
    def __init__(self, objects: Optional[Dict[Tuple[str, str], bytes]] = None):
        self.objects: Dict[Tuple[str, str], bytes] = dict(objects or {})

    def download(self, bucket: str, key: str) -> bytes:
        try:
            return self.objects[(bucket, key)]
        except KeyError:
            raise DownloadError(f"Object not found: {bucket}/{key}")

    def upload(self, bucket: str, key: str, data: bytes) -> str:
        self.objects[(bucket, key)] = data
        return f"{bucket}/{key}"
