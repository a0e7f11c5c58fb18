"""Profile export/import and the on-disk profile library."""

from .library import ProfileLibrary, sanitize_name
from .serializer import (
    MAX_PROFILE_BYTES,
    PROFILE_VERSION,
    ImportReport,
    ProfileSerializer,
    check_size,
    from_json,
    load_profile_file,
    save_profile_file,
    to_json,
    validate_profile,
)

__all__ = [
    "MAX_PROFILE_BYTES",
    "PROFILE_VERSION",
    "ImportReport",
    "ProfileLibrary",
    "ProfileSerializer",
    "check_size",
    "from_json",
    "load_profile_file",
    "sanitize_name",
    "save_profile_file",
    "to_json",
    "validate_profile",
]
