# helpers.py - build tiny .docx packages in memory
import io
import struct
import zipfile
from typing import Dict, Optional

from lexfill.docx_utils import Package, extract_text

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
XML_DECL = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'

CONTENT_TYPES = (
    XML_DECL
    + '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    '<Default Extension="xml" ContentType="application/xml"/>'
    '<Default Extension="png" ContentType="image/png"/>'
    "</Types>"
)
RELS = (
    XML_DECL
    + '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" Target="word/document.xml"/>'
    "</Relationships>"
)
STYLES = XML_DECL + f'<w:styles xmlns:w="{W_NS}"><w:style w:styleId="Normal"/></w:styles>'
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(range(256)) * 4


def run(text: str, bold: bool = False) -> str:
    rpr = "<w:rPr><w:b/></w:rPr>" if bold else ""
    return f'<w:r>{rpr}<w:t xml:space="preserve">{text}</w:t></w:r>'


def para(*runs: str) -> str:
    return "<w:p>" + "".join(r if r.startswith("<w:r") else run(r) for r in runs) + "</w:p>"


def document_xml(*paras: str) -> str:
    return XML_DECL + f'<w:document xmlns:w="{W_NS}"><w:body>{"".join(paras)}</w:body></w:document>'


def header_xml(*paras: str, tag: str = "hdr") -> str:
    return XML_DECL + f'<w:{tag} xmlns:w="{W_NS}">{"".join(paras)}</w:{tag}>'


def make_docx(
    document: str,
    headers: Optional[Dict[str, str]] = None,
    footers: Optional[Dict[str, str]] = None,
    with_media: bool = True,
) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as z:
        z.writestr("[Content_Types].xml", CONTENT_TYPES)
        z.writestr("_rels/.rels", RELS)
        z.writestr("word/document.xml", document)
        for name, xml in (headers or {}).items():
            z.writestr(f"word/{name}", xml)
        for name, xml in (footers or {}).items():
            z.writestr(f"word/{name}", xml)
        z.writestr("word/styles.xml", STYLES)
        if with_media:
            z.writestr("word/media/image1.png", PNG_BYTES, compress_type=zipfile.ZIP_STORED)
    return buf.getvalue()


def read_part(docx: bytes, name: str) -> bytes:
    with zipfile.ZipFile(io.BytesIO(docx)) as z:
        return z.read(name)


def part_names(docx: bytes):
    with zipfile.ZipFile(io.BytesIO(docx)) as z:
        return z.namelist()


def docx_text(docx: bytes) -> str:
    return extract_text(Package.open(docx))


def corrupt_part(docx: bytes, name: str, count: int = 20) -> bytes:
    """Flip the first `count` bytes of a part's compressed data."""
    data = bytearray(docx)
    with zipfile.ZipFile(io.BytesIO(docx)) as z:
        info = z.getinfo(name)
    # local file header: 30 fixed bytes, then file name and extra field
    name_len, extra_len = struct.unpack("<HH", data[info.header_offset + 26:info.header_offset + 30])
    start = info.header_offset + 30 + name_len + extra_len
    for i in range(start, start + min(count, info.compress_size)):
        data[i] ^= 0xFF
    return bytes(data)


class FakeLLM:
    """Stands in for LLMClient: replays canned completions (or raises queued exceptions)."""

    model = "fake-model"

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def complete(self, messages, temperature=0.0):
        self.calls.append(messages)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply
