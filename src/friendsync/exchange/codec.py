"""Wire codec for the subscription change exchange.

Message format:
    <tag>=<json object>

    friendsync.changes.v1.query={"shareIndex":0,"subPath":"docs/","sinceTimestamp":1000}
    friendsync.changes.v1.reply={"shareIndex":0,"subPath":"docs/","newWatermark":2000,"changedFiles":["report.pdf"]}

The tag carries a fixed family constant and a protocol version. Peers
running another version may send tags we don't know; those messages are
ignored rather than rejected. Fields are emitted in declaration order.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

# If these change after release, older peers will ignore our messages.
MESSAGE_FAMILY = "friendsync.changes"
PROTOCOL_VERSION = "v1"
QUERY_TAG = f"{MESSAGE_FAMILY}.{PROTOCOL_VERSION}.query"
REPLY_TAG = f"{MESSAGE_FAMILY}.{PROTOCOL_VERSION}.reply"
TAG_SEPARATOR = "="


class DecodeError(Exception):
    """Raised when a message of our family cannot be decoded."""


class _WireMessage(BaseModel):
    """Base for wire messages: strict types, immutable, camelCase on the wire."""

    model_config = ConfigDict(strict=True, frozen=True, populate_by_name=True)


class ChangesQuery(_WireMessage):
    """Ask a peer for files changed under a share sub-path."""

    share_index: int = Field(alias="shareIndex", ge=0)
    sub_path: str = Field(alias="subPath")
    since_timestamp: int = Field(alias="sinceTimestamp")


class ChangesReply(_WireMessage):
    """Files changed under a share sub-path, relative to that sub-path."""

    share_index: int = Field(alias="shareIndex", ge=0)
    sub_path: str = Field(alias="subPath")
    new_watermark: int = Field(alias="newWatermark")
    changed_files: list[str] = Field(alias="changedFiles")


WireMessage = ChangesQuery | ChangesReply

_TAGS: dict[type[_WireMessage], str] = {
    ChangesQuery: QUERY_TAG,
    ChangesReply: REPLY_TAG,
}
_MODELS: dict[str, type[_WireMessage]] = {tag: model for model, tag in _TAGS.items()}


def encode_message(message: WireMessage) -> str:
    """Encode a query or reply with its type tag.

    Args:
        message: Message to encode.

    Returns:
        Tagged message text.
    """
    tag = _TAGS[type(message)]
    return f"{tag}{TAG_SEPARATOR}{message.model_dump_json(by_alias=True)}"


def is_family_message(data: str) -> bool:
    """Check whether a message belongs to the change exchange family."""
    return data.startswith(f"{MESSAGE_FAMILY}.")


def decode_message(data: str) -> WireMessage | None:
    """Decode a tagged message.

    Args:
        data: Raw message text received from a peer.

    Returns:
        The decoded message, or None if the message belongs to another
        plug-in or to an unsupported protocol version.

    Raises:
        DecodeError: If the message has one of our tags but a missing,
            malformed or mistyped field.
    """
    if not is_family_message(data):
        return None

    tag, separator, body = data.partition(TAG_SEPARATOR)
    model = _MODELS.get(tag)
    if model is None:
        logger.debug("Ignoring message with unsupported tag: %s", tag)
        return None
    if not separator:
        raise DecodeError(f"Missing body in {tag} message")

    try:
        return model.model_validate_json(body)  # type: ignore[return-value]
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
            for err in e.errors()
        )
        raise DecodeError(f"Malformed {tag} message: {problems}") from e
