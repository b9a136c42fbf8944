"""Category-scoped local storage for accepted uploads.

Files live at ``{root}/{category}/{stored_name}``; names are generated by
:func:`showroom_api.lib.uploads.filenames.generate_stored_name`, never taken
from the client.
"""

from collections.abc import Iterator
from pathlib import Path

import aiofiles
import aiofiles.os

from showroom_api.lib.uploads.policy import UploadCategory


class CategoryFileStorage:
    """Local filesystem storage rooted at ``root``.

    Args:
        root: The upload root directory.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def category_dir(self, category: UploadCategory) -> Path:
        return self._root / category.value

    def path_for(self, category: UploadCategory, stored_name: str) -> Path:
        """Resolve the on-disk path of a stored file.

        Raises:
            ValueError: If ``stored_name`` would leave the category directory.
        """
        if not stored_name or stored_name in (".", "..") or "/" in stored_name or "\\" in stored_name:
            msg = f"Invalid stored file name: {stored_name!r}"
            raise ValueError(msg)
        return self.category_dir(category) / stored_name

    async def save(self, content: bytes, category: UploadCategory, stored_name: str) -> Path:
        """Write ``content`` under the category directory.

        Creates the category directory as needed.  Uses exclusive creation
        so an existing file is never overwritten.

        Returns:
            The full path of the written file.
        """
        path = self.path_for(category, stored_name)
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "xb") as f:
            await f.write(content)
        return path

    async def load(self, category: UploadCategory, stored_name: str) -> bytes:
        """Read a stored file.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        path = self.path_for(category, stored_name)
        if not path.is_file():
            msg = f"File not found: {category.value}/{stored_name}"
            raise FileNotFoundError(msg)
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def size(self, category: UploadCategory, stored_name: str) -> int:
        """Return the size in bytes of a stored file."""
        stat = await aiofiles.os.stat(self.path_for(category, stored_name))
        return stat.st_size

    async def delete(self, category: UploadCategory, stored_name: str) -> bool:
        """Delete a stored file.

        Returns:
            True if a file was removed, False if it was already absent.
        """
        try:
            await aiofiles.os.remove(self.path_for(category, stored_name))
        except FileNotFoundError:
            return False
        return True

    def exists(self, category: UploadCategory, stored_name: str) -> bool:
        return self.path_for(category, stored_name).is_file()

    def iter_files(self, category: UploadCategory) -> Iterator[Path]:
        """Yield every stored file of a category."""
        directory = self.category_dir(category)
        if not directory.is_dir():
            return
        for path in sorted(directory.iterdir()):
            if path.is_file():
                yield path
