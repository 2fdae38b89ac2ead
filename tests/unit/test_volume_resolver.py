"""
Unit tests for mount parsing and volumes_from resolution.
"""
import pytest
from c2k.MODELS.orchestration_config import NormalizedModel
from c2k.MODELS.service_definition import ServiceDescriptor
from c2k.RESOLVERS.volume_resolver import VolumeResolver, parse_volume, split_reference
from c2k.UTILS.diagnostics import WarningLog
from c2k.errors import InvalidMountFormatError, UnknownServiceReferenceError


def make_model(**services):
    return NormalizedModel(services={
        name: ServiceDescriptor(name=name, image="busybox", **fields)
        for name, fields in services.items()
    })


@pytest.mark.parametrize("volume, expected", [
    ("/tmp/volume", ("", "", "/tmp/volume", "")),
    ("data:/var/lib/mysql", ("data", "", "/var/lib/mysql", "")),
    ("./cache:/tmp/cache:ro", ("", "./cache", "/tmp/cache", "ro")),
    ("name:/host:/container:rw", ("name", "/host", "/container", "rw")),
    ("/host:/container", ("", "/host", "/container", "")),
])
def test_parse_volume(volume, expected):
    assert parse_volume(volume) == expected


@pytest.mark.parametrize("volume", ["", "data", "data:ro", "/a:/b:/c", "name:container", "a:b:/c:rw"])
def test_parse_volume_rejects_invalid_strings(volume):
    with pytest.raises(InvalidMountFormatError) as exc:
        parse_volume(volume, service="web")
    assert exc.value.volume == volume


def test_relabel_suffix_is_dropped_with_warning():
    warnings = WarningLog()
    assert parse_volume("/host:/container:z", warnings, "web") == ("", "/host", "/container", "")
    assert len(warnings) == 1
    assert ":z or :Z not supported" in warnings.messages[0]


def test_split_reference():
    assert split_reference("db:ro") == ("db", "ro")
    assert split_reference("db") == ("db", "")


class TestVolumeResolver:
    """Tests for VolumeResolver."""

    def test_own_mounts_get_claim_identities(self):
        model = make_model(web={"volumes": ["/data", "logs:/var/log", "./x:/x"]})
        mounts = VolumeResolver(model).resolve("web")
        assert [m.claim_name for m in mounts] == ["web-claim0", "logs", "web-claim2"]
        assert mounts[2].host_path == "./x"
        assert mounts[1].volume_name == "logs"
        assert all(m.origin == "web" and not m.inherited for m in mounts)

    def test_named_volume_identity_is_normalized(self):
        model = make_model(web={"volumes": ["My_Data:/data"]})
        assert VolumeResolver(model).resolve("web")[0].claim_name == "my-data"

    def test_duplicate_container_path_keeps_first(self):
        model = make_model(web={"volumes": ["/data", "other:/data"]})
        mounts = VolumeResolver(model).resolve("web")
        assert len(mounts) == 1
        assert mounts[0].claim_name == "web-claim0"

    def test_inheritance_chain_reuses_origin_identity(self):
        model = make_model(
            e={"volumes": ["/shared", "/e-only"]},
            d={"volumes_from": ["e"], "volumes": ["/d-only"]},
            c={"volumes_from": ["d"], "volumes": ["/shared:ro", "/c-only"]},
        )
        mounts = VolumeResolver(model).resolve("c")
        by_path = {m.container_path: m for m in mounts}

        assert [m.container_path for m in mounts] == ["/shared", "/c-only", "/d-only", "/e-only"]
        shared = by_path["/shared"]
        assert shared.claim_name == "e-claim0"
        assert shared.origin == "e"
        assert shared.service == "c"
        assert shared.read_only
        assert by_path["/c-only"].claim_name == "c-claim1"
        assert by_path["/d-only"].claim_name == "d-claim0"
        assert by_path["/e-only"].claim_name == "e-claim1"
        assert by_path["/e-only"].inherited

    def test_resolution_is_idempotent(self):
        model = make_model(
            e={"volumes": ["/shared"]},
            c={"volumes_from": ["e"], "volumes": ["/c-only"]},
        )
        resolver = VolumeResolver(model)
        first = resolver.resolve("c")
        assert resolver.resolve("c") == first
        assert VolumeResolver(model).resolve("c") == first

    def test_diamond_inheritance_yields_one_mount(self):
        model = make_model(
            d={"volumes": ["/data"]},
            b={"volumes_from": ["d"]},
            c={"volumes_from": ["d"]},
            a={"volumes_from": ["b", "c"]},
        )
        mounts = VolumeResolver(model).resolve("a")
        assert [(m.container_path, m.claim_name) for m in mounts] == [("/data", "d-claim0")]

    def test_read_only_reference(self):
        model = make_model(db={"volumes": ["/data"]}, backup={"volumes_from": ["db:ro"]})
        mount = VolumeResolver(model).resolve("backup")[0]
        assert mount.read_only
        assert mount.claim_name == "db-claim0"

    def test_unknown_reference_raises(self):
        model = make_model(web={"volumes_from": ["ghost"]})
        with pytest.raises(UnknownServiceReferenceError) as exc:
            VolumeResolver(model).resolve("web")
        assert exc.value.reference == "ghost"

    def test_invalid_mount_raises(self):
        model = make_model(web={"volumes": ["data:ro"]})
        with pytest.raises(InvalidMountFormatError):
            VolumeResolver(model).resolve("web")

    def test_resolve_all(self):
        model = make_model(a={"volumes": ["/a"]}, b={})
        result = VolumeResolver(model).resolve_all(["a", "b"])
        assert list(result) == ["a", "b"]
        assert result["b"] == []
