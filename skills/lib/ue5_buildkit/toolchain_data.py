"""
Linux cross-compile toolchain releases published by Epic.

One entry per toolchain release. Supporting a new engine version means adding
a row here; the lookup code in toolchains.py does not change.
"""

CDN_BASE_URL = "https://cdn.unrealengine.com/CrossToolchain_Linux"

TOOLCHAIN_RELEASES = (
    {
        "tag": "v20",
        "clang": "13.0.1",
        "os": "centos7",
        "engines": ["5.0", "5.1"],
    },
    {
        "tag": "v21",
        "clang": "15.0.1",
        "os": "centos7",
        "engines": ["5.2"],
    },
    {
        "tag": "v22",
        "clang": "16.0.6",
        "os": "centos7",
        "engines": ["5.3", "5.4"],
    },
    {
        "tag": "v23",
        "clang": "18.1.0",
        "os": "rockylinux8",
        "engines": ["5.5"],
    },
    {
        "tag": "v25",
        "clang": "18.1.0",
        "os": "rockylinux8",
        "engines": ["5.6"],
    },
)
