"""Magic-number verification of uploaded content.

``verify`` is a pure function: it compares the leading bytes of a buffer
with the signatures registered for the declared MIME type.  Types with no
registered signature are trusted as declared and rely on the extension and
MIME allow-lists alone.
"""

_ZIP = (b"PK\x03\x04", b"PK\x05\x06")
_OLE2 = (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1",)
_RAR = (b"Rar!\x1a\x07",)

SIGNATURES: dict[str, tuple[bytes, ...]] = {
    "image/jpeg": (b"\xff\xd8\xff",),
    "image/png": (b"\x89PNG\r\n\x1a\n",),
    "image/gif": (b"GIF87a", b"GIF89a"),
    "image/webp": (b"RIFF",),
    "image/svg+xml": (b"<svg",),
    "application/pdf": (b"%PDF",),
    "application/zip": _ZIP,
    "application/x-zip-compressed": _ZIP,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": _ZIP,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": _ZIP,
    "application/msword": _OLE2,
    "application/vnd.ms-excel": _OLE2,
    "application/vnd.rar": _RAR,
    "application/x-rar-compressed": _RAR,
}

# SVG markup may follow an XML prolog, doctype or comment, so its signature
# is searched for anywhere in the buffer rather than only at offset 0.
EMBEDDED_SIGNATURE_TYPES = frozenset({"image/svg+xml"})


def has_signature(declared_type: str) -> bool:
    """Whether content of ``declared_type`` is checked byte-for-byte."""
    return declared_type.lower() in SIGNATURES


def verify(content: bytes, declared_type: str) -> bool:
    """Check that ``content`` carries a signature of its declared type.

    Args:
        content: The raw bytes (at least the leading bytes) of the file.
        declared_type: Caller-supplied MIME type.

    Returns:
        True if a registered signature matches, or if no signature is
        registered for ``declared_type``; False otherwise.
    """
    mime = declared_type.lower()
    signatures = SIGNATURES.get(mime)
    if signatures is None:
        return True
    if any(content.startswith(sig) for sig in signatures):
        return True
    if mime in EMBEDDED_SIGNATURE_TYPES:
        return any(sig in content for sig in signatures)
    return False
