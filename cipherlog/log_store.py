# cipherlog/log_store.py
import logging
import threading
from pathlib import Path
from typing import List, Optional

from cipherlog.string_cipher import StringCipher, StringCipherError

log = logging.getLogger(__name__)

# base64 never produces a comma, so it can delimit encrypted entries
ENTRY_DELIMITER = ","


class EncryptedLogStore:
    def __init__(self,
                 path,
                 password: Optional[str] = None,
                 entry_separator: str = "\n\n",
                 cipher: Optional[StringCipher] = None):
        """
        path: log file, created (with parent folders) on first append.
        password: when None, entries are stored as plaintext followed by entry_separator.
        """
        if entry_separator is None:
            raise ValueError("entry_separator must not be None")
        self.path = Path(path)
        self.password = password
        self.entry_separator = entry_separator
        self.cipher = cipher or StringCipher()
        self._lock = threading.Lock()

    @property
    def encrypted(self) -> bool:
        return self.password is not None

    def append(self, entry: str) -> None:
        """Append one entry; encrypted entries are followed by ENTRY_DELIMITER."""
        if self.encrypted:
            record = self.cipher.encrypt(entry, self.password) + ENTRY_DELIMITER
        else:
            record = entry + self.entry_separator

        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8", newline="") as f:
                f.write(record)

    def read_entries(self, skip_invalid: bool = False) -> List[str]:
        """
        Return every stored entry in file order.
        With skip_invalid, fragments that fail to decrypt are logged and dropped
        instead of raising.
        """
        try:
            with open(self.path, "r", encoding="utf-8", newline="") as f:
                content = f.read()
        except FileNotFoundError as exc:
            raise FileNotFoundError(f"Log file not found: {self.path}") from exc

        if not self.encrypted:
            if not self.entry_separator:
                return [content] if content else []
            return [e for e in content.split(self.entry_separator) if e]

        entries = []
        for index, fragment in enumerate(content.split(ENTRY_DELIMITER)):
            if not fragment:
                continue
            try:
                entries.append(self.cipher.decrypt(fragment, self.password))
            except StringCipherError as exc:
                if not skip_invalid:
                    raise
                log.warning("Skipping entry %d of %s: %s", index, self.path, exc)
        return entries

    def decrypt_to(self,
                   destination,
                   entry_separator: Optional[str] = None,
                   skip_invalid: bool = False) -> int:
        """Append every entry to destination, each followed by the separator. Returns the count."""
        separator = self.entry_separator if entry_separator is None else entry_separator
        entries = self.read_entries(skip_invalid=skip_invalid)

        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        with open(destination, "a", encoding="utf-8", newline="") as f:
            for entry in entries:
                f.write(f"{entry}{separator}")

        log.info("Wrote %d entries from %s to %s", len(entries), self.path, destination)
        return len(entries)
