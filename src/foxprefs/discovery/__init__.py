"""
Locating profiles and installations on the local machine.
"""

from foxprefs.discovery.installations import (
    Installation,
    find_installation,
    find_installations,
)
from foxprefs.discovery.profiles import (
    ProfileInfo,
    default_profiles_dir,
    find_profile_path,
    list_profiles,
)

__all__ = [
    "Installation",
    "ProfileInfo",
    "default_profiles_dir",
    "find_installation",
    "find_installations",
    "find_profile_path",
    "list_profiles",
]
