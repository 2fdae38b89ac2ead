"""
Helpers that turn compose names into valid cluster object names.
"""
import re

_INVALID = re.compile(r"[^a-z0-9-]+")


def normalize_name(name: str) -> str:
    """
    Lower-cases a name and replaces underscores with hyphens.

    :param name: A service or container name.
    :return: A name acceptable as a DNS-1123 label.
    """
    return name.lower().replace("_", "-")


def format_file_name(path: str) -> str:
    """
    Derives an object name from a file path, e.g. './a/web.env' -> 'a-web-env'.
    """
    name = path.strip()
    while name.startswith("./"):
        name = name[2:]
    name = _INVALID.sub("-", name.lower())
    return re.sub(r"-{2,}", "-", name).strip("-")


def image_tag(image: str) -> str:
    """
    Returns the tag of an image reference, or 'latest' when it has none.

    Handles registries with ports, e.g. 'myregistryhost:5000/fedora/httpd:1.0'.
    """
    if "@" in image:
        image = image.split("@", 1)[0]
    last = image.rsplit("/", 1)[-1]
    parts = last.split(":")
    if len(parts) == 2 and parts[1]:
        return parts[1]
    return "latest"
