import time
from c2k.CONVERTERS.to_kubernetes import convert
from c2k.MODELS.convert_options import ColocationMode, ConvertOptions
from c2k.MODELS.orchestration_config import NormalizedModel
from c2k.MODELS.service_definition import Port, ServiceDescriptor


def chain_model(size):
    """
    A long volumes_from chain: every service inherits the previous one's mounts.
    """
    services = {}
    for i in range(size):
        name = f"service-{i:03d}"
        services[name] = ServiceDescriptor(
            name=name,
            image="busybox",
            ports=[Port(container_port=8000 + i)],
            volumes=[f"/data/{i}"],
            volumes_from=[f"service-{i - 1:03d}"] if i else [],
        )
    return NormalizedModel(services=services)


def test_stress_long_chain():
    """
    Converts 150 services chained by volumes_from, one workload each.
    """
    model = chain_model(150)

    start_time = time.time()
    result = convert(model)
    end_time = time.time()
    print(f"Converted 150 services in {end_time - start_time:.2f}s")

    assert len([o for o in result.objects if o.kind == "Deployment"]) == 150
    assert len([o for o in result.objects if o.kind == "PersistentVolumeClaim"]) == 150
    last = next(o for o in result.objects if o.kind == "Deployment" and o.name == "service-149")
    mounts = last.spec["template"]["spec"]["containers"][0]["volumeMounts"]
    assert len(mounts) == 150


def test_stress_shared_volume_colocation():
    """
    The same chain colocated by shared volume collapses into a single workload.
    """
    result = convert(chain_model(60), ConvertOptions(colocation=ColocationMode.BY_SHARED_VOLUME))
    workloads = [o for o in result.objects if o.is_workload]
    assert [w.name for w in workloads] == ["service-000"]
    assert len(workloads[0].spec["template"]["spec"]["containers"]) == 60
