import os
import pytest
from c2k.PARSERS.compose_parser import ComposeParser
from c2k.CONVERTERS.to_kubernetes import convert
from c2k.errors import ComposeLoadError


def test_python_tags_are_not_constructed(tmp_path):
    """
    The loader must not build arbitrary Python objects from YAML tags.
    """
    marker = tmp_path / "pwned.txt"
    content = f"""
services:
  web:
    image: !!python/object/apply:os.system ["touch {marker}"]
"""
    with pytest.raises(ComposeLoadError):
        ComposeParser().parse_from_string(content, str(tmp_path))
    assert not os.path.exists(marker)


def test_user_labels_cannot_override_selector():
    """
    A user label named like the selector label must not retarget the workload.
    """
    model = ComposeParser().parse_from_string("""
services:
  web:
    image: nginx
    ports: ["80"]
    labels:
      c2k.service: other
""")
    result = convert(model)
    deployment = next(obj for obj in result.objects if obj.kind == "Deployment")
    assert deployment.spec["selector"] == {"matchLabels": {"c2k.service": "web"}}
    assert deployment.spec["template"]["metadata"]["labels"]["c2k.service"] == "web"


def test_env_values_are_not_interpolated(tmp_path, monkeypatch):
    """
    Environment values are copied as written, never expanded from the host.
    """
    monkeypatch.setenv("HOST_SECRET", "s3cr3t")
    model = ComposeParser().parse_from_string("""
services:
  web:
    image: nginx
    environment:
      TOKEN: $HOST_SECRET
""", str(tmp_path))
    assert model.services["web"].environment[0].value == "$HOST_SECRET"
