# docx_utils.py
"""
OOXML package access for .docx files.

A .docx is a zip archive of XML parts. `Package` keeps every entry in memory,
exposes the text-bearing parts (body, headers, footers) for rewriting, and
repacks the archive with every other entry (images, styles, relationships)
carried over byte-for-byte.

Public:
    Package.open(data: bytes) -> Package
    Package.list_parts_matching(pattern=TEXT_PARTS_RE) -> List[PartHandle]
    PartHandle.read_text() -> Optional[str]
    PartHandle.write_text(text: str) -> None
    Package.serialize() -> bytes
    extract_text(package) -> str
"""
import io
import re
import zlib
import zipfile
import logging
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Pattern

logger = logging.getLogger(__name__)

DOCX_MAIN = "word/document.xml"
W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
NS = {"w": W_NS}

# word/document.xml, word/header1.xml, word/footer.xml, ...
TEXT_PARTS_RE = re.compile(r"^word/(document|header\d*|footer\d*)\.xml$")


class DocumentError(Exception):
    """The uploaded bytes are not a readable .docx package."""


class PartHandle:
    def __init__(self, package: "Package", name: str):
        self._package = package
        self.name = name

    def read_text(self) -> Optional[str]:
        """Return the part decoded as UTF-8, or None if it is absent or unreadable."""
        data = self._package.read(self.name)
        if data is None:
            return None
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            logger.debug("Skipping undecodable part %s", self.name)
            return None

    def write_text(self, text: str) -> None:
        self._package.write(self.name, text.encode("utf-8"))

    def __repr__(self) -> str:
        return f"PartHandle({self.name!r})"


class Package:
    def __init__(self, infos: List[zipfile.ZipInfo], parts: Dict[str, bytes]):
        self._infos = infos
        self._parts = parts

    @classmethod
    def open(cls, data: bytes) -> "Package":
        # corrupt deflate streams raise zlib.error, encrypted entries RuntimeError,
        # unknown compression methods NotImplementedError
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as z:
                infos = z.infolist()
                parts = {info.filename: z.read(info.filename) for info in infos}
        except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, RuntimeError,
                NotImplementedError, OSError, EOFError) as e:
            raise DocumentError(f"Not a readable .docx archive: {e}") from e
        if DOCX_MAIN not in parts:
            raise DocumentError(f"Archive has no {DOCX_MAIN}")
        return cls(infos, parts)

    @property
    def part_names(self) -> List[str]:
        return [info.filename for info in self._infos]

    def read(self, name: str) -> Optional[bytes]:
        return self._parts.get(name)

    def write(self, name: str, data: bytes) -> None:
        # Existing parts only; the package never gains or loses entries.
        if name not in self._parts:
            raise KeyError(name)
        self._parts[name] = data

    def list_parts_matching(self, pattern: Pattern = TEXT_PARTS_RE) -> List[PartHandle]:
        return [PartHandle(self, name) for name in self.part_names if pattern.match(name)]

    def serialize(self) -> bytes:
        out = io.BytesIO()
        with zipfile.ZipFile(out, "w") as zout:
            for info in self._infos:
                zi = zipfile.ZipInfo(info.filename, date_time=info.date_time)
                zi.compress_type = info.compress_type
                zi.external_attr = info.external_attr
                zi.comment = info.comment
                zout.writestr(zi, self._parts[info.filename])
        return out.getvalue()


def _paragraph_texts(xml_data: bytes) -> List[str]:
    root = ET.fromstring(xml_data)
    paragraphs = []
    for p in root.iterfind(".//w:p", namespaces=NS):
        parts = []
        for t in p.iterfind(".//w:t", namespaces=NS):
            if t.text:
                parts.append(t.text)
        paragraphs.append("".join(parts))
    return paragraphs


def extract_text(package: Package) -> str:
    """Flatten the body: paragraph texts (table cells included) joined with newlines."""
    xml_data = package.read(DOCX_MAIN)
    try:
        return "\n".join(_paragraph_texts(xml_data))
    except ET.ParseError as e:
        raise DocumentError(f"{DOCX_MAIN} is not well-formed XML: {e}") from e
