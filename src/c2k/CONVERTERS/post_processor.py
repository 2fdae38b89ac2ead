"""
Global ordering and de-duplication of the objects of a conversion.
"""
from typing import Iterable, List, Set, Tuple

from ..MODELS.emitted_object import API_VERSIONS, EmittedObject


def services_first(objects: Iterable[EmittedObject]) -> List[EmittedObject]:
    """
    Stable partition: Services first, everything else after, each part in its
    original order.
    """
    objects = list(objects)
    return [o for o in objects if o.kind == "Service"] + [o for o in objects if o.kind != "Service"]


def remove_duplicates(objects: Iterable[EmittedObject]) -> List[EmittedObject]:
    """
    Keeps the first object for every (kind, namespace, name).
    """
    seen: Set[Tuple[str, str, str]] = set()
    unique = []
    for obj in objects:
        if obj.key in seen:
            continue
        seen.add(obj.key)
        unique.append(obj)
    return unique


def fix_shape(obj: EmittedObject) -> EmittedObject:
    """
    Fills in apiVersion, kind and metadata name/namespace where a manifest
    lacks them. Values already present are left alone.
    """
    manifest = dict(obj.manifest)
    manifest.setdefault("apiVersion", API_VERSIONS.get(obj.kind, "v1"))
    manifest.setdefault("kind", obj.kind)
    metadata = dict(manifest.get("metadata", {}))
    metadata.setdefault("name", obj.name)
    metadata.setdefault("namespace", obj.namespace)
    manifest["metadata"] = metadata
    return obj.model_copy(update={"manifest": manifest})


def finalize(objects: Iterable[EmittedObject]) -> List[EmittedObject]:
    """
    Orders Services before workloads, then drops structural duplicates.

    :param objects: Objects in build order.
    :return: The final object list.
    """
    return remove_duplicates(fix_shape(obj) for obj in services_first(objects))
