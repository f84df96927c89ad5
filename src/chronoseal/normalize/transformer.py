# src/chronoseal/normalize/transformer.py

import base64
import logging
import re
from typing import Union

from chronoseal.errors import InvalidInputError
from chronoseal.normalize.schema import (
    BinaryContent,
    InputType,
    NormalizedContent,
    RawContent,
    TextContent,
)

logger = logging.getLogger(__name__)

DATA_URI_PATTERN = re.compile(r"^data:([a-zA-Z0-9]+/[a-zA-Z0-9\-.+]+)?;base64,")


def to_content(value: Union[str, bytes, bytearray, TextContent, BinaryContent]) -> RawContent:
    """
    Decide the content variant once, at the service boundary.

    Strings become TextContent, byte buffers become BinaryContent. Values that
    are already a variant pass through unchanged.

    Raises:
        InvalidInputError: If the value is missing, empty or of another type.
    """
    if isinstance(value, (TextContent, BinaryContent)):
        content = value
    elif isinstance(value, str):
        content = TextContent(text=value)
    elif isinstance(value, (bytes, bytearray)):
        content = BinaryContent(data=bytes(value))
    elif value is None:
        raise InvalidInputError("Document text or Base64 string is required.")
    else:
        raise InvalidInputError(
            f"Unsupported content type: {type(value).__name__}"
        )

    if isinstance(content, TextContent) and content.text == "":
        raise InvalidInputError("Document text or Base64 string is required.")
    if isinstance(content, BinaryContent) and not content.data:
        raise InvalidInputError("Uploaded file is empty.")
    return content


class InputNormalizer:
    """
    Canonicalizes submitted content into the bytes that get hashed.

    Text is classified as a data URI, bare Base64 or plain text; binary
    buffers are used verbatim. The classification only feeds the stored
    input_type and never changes how the digest is computed.
    """

    def normalize(self, content: RawContent) -> NormalizedContent:
        """
        Normalize one content variant.

        Args:
            content: TextContent or BinaryContent built by to_content()

        Returns:
            NormalizedContent with canonical bytes and classification tag.
        """
        if isinstance(content, BinaryContent):
            return NormalizedContent(canonical=content.data, input_type=InputType.BASE64)
        if not isinstance(content, TextContent):
            raise InvalidInputError(
                f"Unsupported content variant: {type(content).__name__}"
            )

        text = content.text
        match = DATA_URI_PATTERN.match(text)
        if match:
            payload = text[match.end():]
            logger.debug(f"Stripped data URI prefix (mime={match.group(1)})")
            return NormalizedContent(
                canonical=payload.encode("utf-8"), input_type=InputType.BASE64
            )

        if self.is_base64(text):
            return NormalizedContent(
                canonical=text.encode("utf-8"), input_type=InputType.BASE64
            )

        return NormalizedContent(
            canonical=text.strip().encode("utf-8"), input_type=InputType.TEXT
        )

    @staticmethod
    def is_base64(text: str) -> bool:
        """True if the whole string survives a Base64 decode/encode round trip."""
        if not text:
            return False
        try:
            decoded = base64.b64decode(text, validate=True)
        except ValueError:
            return False
        return base64.b64encode(decoded).decode("ascii") == text


_default_normalizer = InputNormalizer()


def normalize_content(
    value: Union[str, bytes, bytearray, TextContent, BinaryContent],
) -> NormalizedContent:
    """
    Public API: validate and normalize raw submitted content.

    Args:
        value: String, byte buffer, or an already-built content variant

    Returns:
        NormalizedContent ready for compute_digest().
    """
    return _default_normalizer.normalize(to_content(value))
