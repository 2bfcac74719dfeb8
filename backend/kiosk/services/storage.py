# kiosk/services/storage.py
"""
Unified storage layer with local and cloud backends.
Set KIOSK_STORAGE_BACKEND to 'local' or 's3' to switch.
"""
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from kiosk.config import get_settings
from kiosk.logging import get_logger

log = get_logger(__name__)


class StorageBackend:
    """Abstract storage interface"""

    def write_file(self, path: str, content: bytes) -> str:
        """Write file, return public URL or local path"""
        raise NotImplementedError

    def write_text(self, path: str, content: str) -> str:
        """Write text file"""
        return self.write_file(path, content.encode('utf-8'))

    def write_json(self, path: str, data: Any) -> str:
        """Write JSON file"""
        content = json.dumps(data, ensure_ascii=False, indent=2)
        return self.write_text(path, content)

    def append_jsonl(self, path: str, record: Any) -> str:
        """Append JSON line to file"""
        raise NotImplementedError

    def read_file(self, path: str) -> bytes:
        """Read file content"""
        raise NotImplementedError

    def read_text(self, path: str) -> str:
        """Read text file"""
        return self.read_file(path).decode('utf-8')

    def read_json(self, path: str) -> Any:
        """Read JSON file"""
        return json.loads(self.read_text(path))

    def exists(self, path: str) -> bool:
        """Check if file exists"""
        raise NotImplementedError

    def delete(self, path: str) -> None:
        """Remove a file; missing files are ignored"""
        raise NotImplementedError


class LocalStorage(StorageBackend):
    """Local filesystem storage"""

    def __init__(self, base_dir: str = "data"):
        self.base_dir = Path(base_dir)

    def _full_path(self, path: str) -> Path:
        return self.base_dir / path

    def write_file(self, path: str, content: bytes) -> str:
        full_path = self._full_path(path)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a sibling temp file, then swap it in, so readers never see half a file.
        fd, tmp = tempfile.mkstemp(dir=full_path.parent, prefix=f".{full_path.name}.")
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, full_path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        return str(full_path)

    def append_jsonl(self, path: str, record: Any) -> str:
        full_path = self._full_path(path)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(record, ensure_ascii=False) + "\n"
        with open(full_path, 'a', encoding='utf-8') as f:
            f.write(line)
        return str(full_path)

    def read_file(self, path: str) -> bytes:
        full_path = self._full_path(path)
        with open(full_path, 'rb') as f:
            return f.read()

    def exists(self, path: str) -> bool:
        return self._full_path(path).exists()

    def delete(self, path: str) -> None:
        self._full_path(path).unlink(missing_ok=True)


class S3Storage(StorageBackend):
    """AWS S3 storage backend"""

    def __init__(self, bucket: str, region: str = "ap-southeast-1"):
        self.bucket = bucket
        self.region = region
        self._client = None

    @property
    def client(self):
        """Lazy load boto3 client"""
        if self._client is None:
            import boto3
            self._client = boto3.client('s3', region_name=self.region)
        return self._client

    def _s3_key(self, path: str) -> str:
        """Convert path to S3 key"""
        return path.replace('\\', '/')

    def write_file(self, path: str, content: bytes) -> str:
        key = self._s3_key(path)
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=content
        )
        return f"s3://{self.bucket}/{key}"

    def append_jsonl(self, path: str, record: Any) -> str:
        """Append to JSONL by reading, appending, writing back"""
        existing = self.read_text(path) if self.exists(path) else ""
        line = json.dumps(record, ensure_ascii=False) + "\n"
        return self.write_text(path, existing + line)

    def read_file(self, path: str) -> bytes:
        key = self._s3_key(path)
        response = self.client.get_object(Bucket=self.bucket, Key=key)
        return response['Body'].read()

    def exists(self, path: str) -> bool:
        from botocore.exceptions import ClientError

        key = self._s3_key(path)
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in {"404", "NoSuchKey", "NotFound"}:
                return False
            raise

    def delete(self, path: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=self._s3_key(path))


# Global storage instance
_storage: Optional[StorageBackend] = None


def get_storage() -> StorageBackend:
    """Get storage backend singleton"""
    global _storage
    if _storage is None:
        settings = get_settings()
        if settings.storage_backend == "s3":
            _storage = S3Storage(bucket=settings.s3_bucket, region=settings.aws_region)
            log.info("Storage: S3 bucket=%s", settings.s3_bucket)
        else:
            _storage = LocalStorage(base_dir=settings.data_dir)
            log.info("Storage: local filesystem at %s", settings.data_dir)
    return _storage
