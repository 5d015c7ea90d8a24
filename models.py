import os
import shutil
import yaml
from werkzeug.security import generate_password_hash, check_password_hash

from utils import sanitize_filename, file_extension


# One entry per document extension; create, duplicate and view all read this.
DOCUMENT_TYPES = {
    ".md": {"writable": True, "content_type": "text/html;charset=utf-8", "markdown": True},
    ".txt": {"writable": True, "content_type": "text/plain", "markdown": False},
}

IMAGE_EXTENSIONS = {".jpg"}


class FileStore:
    """Flat directory of files keyed by basename.

    Nothing is cached: listing and lookups always read the directory.
    """

    def __init__(self, root):
        self.root = root

    def path(self, name):
        return os.path.join(self.root, sanitize_filename(name))

    def allows(self, name):
        raise NotImplementedError

    def list(self):
        if not os.path.isdir(self.root):
            return []
        return sorted(
            name for name in os.listdir(self.root)
            if self.allows(name) and os.path.isfile(os.path.join(self.root, name))
        )

    def exists(self, name):
        return os.path.isfile(self.path(name))

    def get(self, name) -> bytes:
        with open(self.path(name), "rb") as f:
            return f.read()

    def put(self, name, content=b""):
        if isinstance(content, str):
            content = content.encode("utf-8")
        os.makedirs(self.root, exist_ok=True)
        with open(self.path(name), "wb") as f:
            f.write(content)

    def delete(self, name):
        os.remove(self.path(name))


class DocumentStore(FileStore):
    def kind(self, name):
        return DOCUMENT_TYPES.get(file_extension(sanitize_filename(name)))

    def allows(self, name):
        kind = self.kind(name)
        return bool(kind and kind["writable"])

    def copy(self, source, target):
        os.makedirs(self.root, exist_ok=True)
        shutil.copyfile(self.path(source), self.path(target))


class ImageStore(FileStore):
    def allows(self, name):
        lowered = sanitize_filename(name).lower()
        return any(lowered.endswith(ext) for ext in IMAGE_EXTENSIONS)

    def content_type(self, name):
        return "image/" + file_extension(sanitize_filename(name)).lstrip(".").lower()

    def save_upload(self, upload, name):
        """Copy an uploaded werkzeug FileStorage into the store."""
        os.makedirs(self.root, exist_ok=True)
        upload.save(self.path(name))


class CredentialStore:
    """username -> password hash, kept in a YAML file.

    Every mutation reloads the whole mapping and writes it back. There is no
    locking, so two sign-ups at the same moment can lose one of the accounts.
    """

    def __init__(self, path):
        self.path = path

    def load(self):
        if not os.path.isfile(self.path):
            return {}
        with open(self.path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a username mapping")
        return {str(username): str(pw_hash) for username, pw_hash in data.items()}

    def save(self, credentials):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(credentials, f, default_flow_style=False)

    def list(self):
        return sorted(self.load())

    def exists(self, username):
        return username in self.load()

    def get(self, username):
        return self.load().get(username)

    def put(self, username, password):
        credentials = self.load()
        credentials[username] = generate_password_hash(password)
        self.save(credentials)

    def delete(self, username):
        credentials = self.load()
        credentials.pop(username, None)
        self.save(credentials)

    def verify(self, username, password):
        pw_hash = self.get(username)
        if not pw_hash or not password:
            return False
        return check_password_hash(pw_hash, password)
