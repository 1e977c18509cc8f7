"""Form data decoding: URL-encoded and multipart.

A submitted field is either a scalar ``FormField`` or an ``UploadFile``;
handlers use ``FormData.entry()`` to tell them apart.

URL-encoded bodies use stdlib ``urllib.parse``; multipart bodies use
``python-multipart``.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from urllib.parse import parse_qs

from python_multipart.exceptions import FormParserError
from python_multipart.multipart import MultipartParser, parse_options_header


class FormDecodeError(ValueError):
    """The body is not a supported form encoding or could not be parsed."""


@dataclass(frozen=True, slots=True)
class FormField:
    """A scalar form value."""

    name: str
    value: str


@dataclass(frozen=True, slots=True)
class UploadFile:
    """An uploaded file from a multipart form submission.

    The content is held in memory as bytes.
    """

    name: str
    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    def __repr__(self) -> str:
        return f"UploadFile({self.filename!r}, {self.content_type!r}, {self.size} bytes)"


type FormEntry = FormField | UploadFile


class FormData(Mapping[str, str]):
    """Immutable parsed form data.

    Implements ``Mapping[str, str]`` over the scalar fields; uploaded
    files live in ``files`` (first per name) and ``get_files()`` (all of
    them). ``entry()`` looks a name up in both, first value first.

    Usage::

        form = await request.form()
        match form.entry("avatar"):
            case UploadFile() as upload: ...
            case FormField(value=value): ...
            case None: ...
    """

    __slots__ = ("_data", "_files")

    def __init__(
        self,
        data: dict[str, list[str]],
        files: dict[str, list[UploadFile]] | None = None,
    ) -> None:
        object.__setattr__(self, "_data", data)
        object.__setattr__(self, "_files", files or {})

    @property
    def files(self) -> Mapping[str, UploadFile]:
        """The first file uploaded under each field name."""
        return {name: uploads[0] for name, uploads in self._files.items() if uploads}

    def get_files(self, key: str) -> list[UploadFile]:
        """Return every file uploaded under *key*, in submission order."""
        return list(self._files.get(key, []))

    def entry(self, name: str) -> FormEntry | None:
        """Return the entry submitted under *name*.

        A scalar value takes precedence over a file of the same name.
        """
        values = self._data.get(name)
        if values:
            return FormField(name, values[0])
        uploads = self._files.get(name)
        return uploads[0] if uploads else None

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"FormData({{{items}}}, files={list(self._files)!r})"

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key* (checkboxes, multi-selects)."""
        return list(self._data.get(key, []))


def parse_form_data(body: bytes, content_type: str) -> FormData:
    """Decode a form body according to its Content-Type.

    Raises:
        FormDecodeError: If the content type is not a form encoding, or
            the body is malformed.
    """
    ct_lower = content_type.lower().split(";")[0].strip()

    if ct_lower == "application/x-www-form-urlencoded":
        return _parse_urlencoded(body)

    if ct_lower == "multipart/form-data":
        return _parse_multipart(body, content_type)

    msg = f"Unsupported form content type: {content_type!r}"
    raise FormDecodeError(msg)


def _parse_urlencoded(body: bytes) -> FormData:
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        msg = "URL-encoded form body is not valid UTF-8"
        raise FormDecodeError(msg) from exc
    return FormData(parse_qs(text, keep_blank_values=True))


def _parse_multipart(body: bytes, content_type: str) -> FormData:
    _, options = parse_options_header(content_type)
    boundary = options.get(b"boundary")
    if not boundary:
        msg = "Multipart form data missing boundary parameter"
        raise FormDecodeError(msg)

    data: dict[str, list[str]] = {}
    files: dict[str, list[UploadFile]] = {}

    headers: dict[str, str] = {}
    header_field = bytearray()
    header_value = bytearray()
    content = bytearray()

    def on_part_begin() -> None:
        headers.clear()
        content.clear()

    def on_header_field(chunk: bytes, start: int, end: int) -> None:
        header_field.extend(chunk[start:end])

    def on_header_value(chunk: bytes, start: int, end: int) -> None:
        header_value.extend(chunk[start:end])

    def on_header_end() -> None:
        headers[header_field.decode("latin-1").lower()] = header_value.decode("latin-1")
        header_field.clear()
        header_value.clear()

    def on_part_data(chunk: bytes, start: int, end: int) -> None:
        content.extend(chunk[start:end])

    def on_part_end() -> None:
        _, params = parse_options_header(headers.get("content-disposition", ""))
        raw_name = params.get(b"name")
        if raw_name is None:
            return
        name = raw_name.decode("utf-8")
        raw_filename = params.get(b"filename")
        if raw_filename is not None:
            upload = UploadFile(
                name=name,
                filename=raw_filename.decode("utf-8"),
                content_type=headers.get("content-type", "application/octet-stream"),
                content=bytes(content),
            )
            files.setdefault(name, []).append(upload)
        else:
            data.setdefault(name, []).append(content.decode("utf-8", errors="replace"))

    callbacks = {
        "on_part_begin": on_part_begin,
        "on_header_field": on_header_field,
        "on_header_value": on_header_value,
        "on_header_end": on_header_end,
        "on_part_data": on_part_data,
        "on_part_end": on_part_end,
    }

    parser = MultipartParser(boundary, callbacks)
    try:
        parser.write(body)
        parser.finalize()
    except (FormParserError, UnicodeDecodeError) as exc:
        msg = f"Malformed multipart body: {exc}"
        raise FormDecodeError(msg) from exc

    return FormData(data, files)
