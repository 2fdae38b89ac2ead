"""
Unit tests for the final ordering of emitted objects.
"""
from c2k.BUILDERS.objects import init_config_map, init_pvc, init_service
from c2k.CONVERTERS.post_processor import finalize, fix_shape, remove_duplicates, services_first
from c2k.MODELS.emitted_object import EmittedObject


def obj(kind, name, namespace="default"):
    return EmittedObject(kind=kind, name=name, namespace=namespace, manifest={"kind": kind})


def test_services_first_is_stable():
    objects = [obj("Deployment", "a"), obj("Service", "b"), obj("PersistentVolumeClaim", "c"), obj("Service", "a")]
    ordered = services_first(objects)
    assert [(o.kind, o.name) for o in ordered] == [
        ("Service", "b"), ("Service", "a"), ("Deployment", "a"), ("PersistentVolumeClaim", "c"),
    ]


def test_remove_duplicates_keeps_first():
    first = init_pvc("data", "default", "1Gi")
    second = init_pvc("data", "default", "5Gi")
    other_ns = init_pvc("data", "staging", "1Gi")
    assert remove_duplicates([first, second, other_ns]) == [first, other_ns]


def test_fix_shape_fills_missing_fields():
    fixed = fix_shape(obj("Deployment", "web"))
    assert fixed.manifest == {
        "kind": "Deployment",
        "apiVersion": "apps/v1",
        "metadata": {"name": "web", "namespace": "default"},
    }


def test_fix_shape_keeps_existing_values():
    config_map = init_config_map("env", "default", {"A": "1"})
    assert fix_shape(config_map) == config_map


def test_finalize():
    service = init_service("web", "default", {"c2k.service": "web"}, [])
    claim = init_pvc("web-claim0", "default", "100Mi")
    result = finalize([claim, service, claim])
    assert [o.kind for o in result] == ["Service", "PersistentVolumeClaim"]
    assert result[0].to_dict()["apiVersion"] == "v1"
