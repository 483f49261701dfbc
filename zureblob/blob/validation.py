"""
Local argument validation.

Everything here runs before a request is built, so a rejected argument never
reaches the network.
"""

import re
from typing import Mapping, Optional

from zureblob.exceptions import ValidationError

ROOT_CONTAINER = "$root"

# Page blobs are addressed in 512-byte pages
PAGE_SIZE = 512


class ContainerNameValidator:
    """
    Validates blob storage container names.

    Rules:
    - 3-63 characters
    - Lowercase letters, numbers, hyphens only
    - Must start with letter or number and must not end with a hyphen
    - No consecutive hyphens
    - "$root" is always valid
    """

    PATTERN = re.compile(r'^[a-z0-9][a-z0-9-]*$')
    MIN_LENGTH = 3
    MAX_LENGTH = 63

    @classmethod
    def validate(cls, name: str) -> tuple[bool, Optional[str]]:
        """
        Validate container name.

        Args:
            name: Container name to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not name:
            return False, "Container name is not specified"

        if name == ROOT_CONTAINER:
            return True, None

        if not cls.PATTERN.match(name):
            return False, "Container name must contain only lowercase letters, numbers, and hyphens"

        if '--' in name:
            return False, "Container name cannot contain consecutive hyphens"

        if len(name) < cls.MIN_LENGTH or len(name) > cls.MAX_LENGTH:
            return False, f"Container name must be {cls.MIN_LENGTH}-{cls.MAX_LENGTH} characters"

        if name.endswith('-'):
            return False, "Container name cannot end with a hyphen"

        return True, None

    @classmethod
    def validate_raise(cls, name: str) -> None:
        """
        Validate container name and raise if invalid.

        Raises:
            ValidationError: If name is invalid
        """
        is_valid, error = cls.validate(name)
        if not is_valid:
            raise ValidationError(error, "InvalidResourceName")


METADATA_NAME_PATTERN = re.compile(r'^[a-zA-Z_@][a-zA-Z0-9_]*$')


def is_valid_container_name(name: str) -> bool:
    return ContainerNameValidator.validate(name)[0]


def is_valid_metadata_name(name: str) -> bool:
    return bool(name) and METADATA_NAME_PATTERN.match(name) is not None


def require(value, message: str) -> None:
    """Reject empty arguments."""
    if not value:
        raise ValidationError(message)


def validate_blob_name(container_name: str, blob_name: str) -> None:
    """
    Blobs stored in the root container can not have a name containing "/".
    """
    require(blob_name, "Blob name is not specified.")
    if container_name == ROOT_CONTAINER and "/" in blob_name:
        raise ValidationError(
            "Blobs stored in the root container can not have a name containing a forward slash (/).",
            "InvalidResourceName",
        )


def validate_metadata(metadata: Optional[Mapping[str, str]]) -> None:
    for key, value in (metadata or {}).items():
        if "\r" in str(value) or "\n" in str(value):
            raise ValidationError("Metadata cannot contain newline characters.", "InvalidMetadata")
        if not is_valid_metadata_name(key):
            raise ValidationError(
                f"Metadata name '{key}' does not adhere to metadata naming conventions.",
                "InvalidMetadata",
            )


def validate_page_range(start: int, end: int, require_end: bool = True) -> None:
    """
    Validate a page-aligned byte range.

    Args:
        start: Start offset, a multiple of 512
        end: Inclusive end offset, one less than a multiple of 512
        require_end: When False, an end of 0 means "to the end of the blob"

    Raises:
        ValidationError: If the range is not page aligned
    """
    if start < 0 or start % PAGE_SIZE != 0:
        raise ValidationError("Start byte offset must be a modulus of 512.", "InvalidPageRange")
    if not require_end and end == 0:
        return
    if (end + 1) % PAGE_SIZE != 0 or end < start:
        raise ValidationError("End byte offset must be a modulus of 512 minus 1.", "InvalidPageRange")
