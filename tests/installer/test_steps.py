# tests/installer/test_steps.py
import pytest
import yaml

from kubeboot.config.models import MachineControllerConfig, WorkerConfig
from kubeboot.installer.steps.certificates import CA_FILES, deploy_ca, download_ca
from kubeboot.installer.steps.cni import UnknownCNIError, apply_cni
from kubeboot.installer.steps.common import apply_on_leader
from kubeboot.installer.steps.control_plane import (
    init_leader,
    install_kube_proxy,
    join_control_plane,
)
from kubeboot.installer.steps.join_token import create_join_token
from kubeboot.installer.steps.kubeadm_config import generate_kubeadm
from kubeboot.installer.steps.machines import (
    MACHINE_CONTROLLER_MANIFEST,
    WORKERS_MANIFEST,
    create_worker_machines,
    install_machine_controller,
)
from kubeboot.installer.steps.prerequisites import install_prerequisites
from kubeboot.installer.tasks import HostTaskError
from kubeboot.state import ClusterContext, State

from conftest import FakeConnector, make_cluster

LEADER = "10.0.0.1"
FOLLOWERS = ["10.0.0.2", "10.0.0.3"]


def test_install_prerequisites_runs_on_every_host(state, connector):
    install_prerequisites(state)

    for addr in [LEADER] + FOLLOWERS:
        cmds = connector.commands(addr)
        assert len(cmds) == 1
        assert "kubeadm" in cmds[0]
        assert "1.14.1" in cmds[0]


def test_install_prerequisites_runs_script_as_root(state, connector):
    install_prerequisites(state)

    for addr in [LEADER] + FOLLOWERS:
        [(script, sudo)] = [c for conn in connector.for_host(addr) for c in conn.commands]
        assert sudo is True
        # the whole script runs under one `sudo -S`, which is fed the password
        assert "sudo " not in script


def test_generate_kubeadm_stages_and_uploads_configs(state, connector):
    generate_kubeadm(state)

    assert state.configuration.paths() == [
        "cfg/master_0.yaml",
        "cfg/master_1.yaml",
        "cfg/master_2.yaml",
    ]
    for addr in [LEADER] + FOLLOWERS:
        assert set(connector.uploaded(addr)) == {
            "kubeboot/cfg/master_0.yaml",
            "kubeboot/cfg/master_1.yaml",
            "kubeboot/cfg/master_2.yaml",
        }
    leader_docs = list(yaml.safe_load_all(state.configuration.get("cfg/master_0.yaml")))
    assert [d["kind"] for d in leader_docs] == ["InitConfiguration", "ClusterConfiguration"]


def test_generate_kubeadm_rerun_overwrites(state):
    generate_kubeadm(state)
    generate_kubeadm(state)
    assert len(state.configuration) == 3


def test_init_leader_runs_kubeadm_init_once(state, connector):
    connector.responses["*"] = {"test -f": ("", "", 1)}

    init_leader(state)

    cmds = connector.commands(LEADER)
    assert "kubeadm init --config=kubeboot/cfg/master_0.yaml" in cmds
    for addr in FOLLOWERS:
        assert connector.commands(addr) == []


def test_init_leader_skips_initialized_host(cluster):
    # admin.conf present: `test -f` succeeds
    connector = FakeConnector()
    state = State(context=ClusterContext(cluster=cluster), connector=connector)

    init_leader(state)

    assert not any(c.startswith("kubeadm init") for c in connector.commands(LEADER))


def test_init_leader_failure_surfaces_host(cluster):
    connector = FakeConnector(responses={
        "*": {"test -f": ("", "", 1)},
        LEADER: {"kubeadm init": ("", "preflight errors", 1)},
    })
    state = State(context=ClusterContext(cluster=cluster), connector=connector)

    with pytest.raises(HostTaskError) as exc:
        init_leader(state)
    assert [h.public_address for h in exc.value.hosts] == [LEADER]
    assert "preflight errors" in str(exc.value)


def test_join_control_plane_followers_in_order(cluster):
    connector = FakeConnector(responses={"*": {"test -f": ("", "", 1)}})
    state = State(context=ClusterContext(cluster=cluster), connector=connector)

    join_control_plane(state)

    assert [c.host.public_address for c in connector.connections] == FOLLOWERS
    assert "kubeadm join --config=kubeboot/cfg/master_1.yaml" in connector.commands(FOLLOWERS[0])
    assert "kubeadm join --config=kubeboot/cfg/master_2.yaml" in connector.commands(FOLLOWERS[1])


def test_download_and_deploy_ca(cluster):
    remote = {f"/etc/kubernetes/pki/{name}": f"<{name}>".encode() for name in CA_FILES}
    connector = FakeConnector(remote_files={LEADER: remote})
    state = State(context=ClusterContext(cluster=cluster), connector=connector)

    download_ca(state)
    assert state.configuration.paths() == [f"pki/{name}" for name in CA_FILES]
    assert state.configuration.get("pki/etcd/ca.key") == b"<etcd/ca.key>"

    deploy_ca(state)
    for addr in FOLLOWERS:
        assert connector.uploaded(addr)["kubeboot/pki/ca.crt"] == b"<ca.crt>"
        assert any("cp -r kubeboot/pki/." in c for c in connector.commands(addr))
    # leader is only read from
    assert connector.uploaded(LEADER) == {}


def test_install_kube_proxy_uses_leader_config(state, connector):
    install_kube_proxy(state)
    assert connector.commands(LEADER) == [
        "kubeadm init phase addon kube-proxy --config=kubeboot/cfg/master_0.yaml"
    ]


def test_apply_on_leader_requires_staged_file(state):
    with pytest.raises(KeyError):
        apply_on_leader(state, "nothing/here.yaml")


def test_apply_cni_flannel(state, connector):
    apply_cni(state, "flannel")

    manifest = state.configuration.get("cni/flannel.yaml").decode()
    assert "10.244.0.0/16" in manifest
    assert any(
        "kubectl apply -f kubeboot/cni/flannel.yaml" in c for c in connector.commands(LEADER)
    )


def test_apply_cni_unknown_plugin(state):
    with pytest.raises(UnknownCNIError):
        apply_cni(state, "weave")


def test_machine_controller_skipped_when_disabled():
    cluster = make_cluster(machine_controller=MachineControllerConfig(deploy=False))
    connector = FakeConnector()
    state = State(context=ClusterContext(cluster=cluster), connector=connector)

    install_machine_controller(state)
    create_worker_machines(state)

    assert connector.connections == []
    assert len(state.configuration) == 0


def test_machine_controller_and_workers_applied():
    cluster = make_cluster(
        machine_controller=MachineControllerConfig(credentials={"AWS_ACCESS_KEY_ID": "AKIA"}),
        workers=[
            WorkerConfig(name="pool-a", replicas=2, provider_spec={"instanceType": "t3.medium"}),
            WorkerConfig(name="pool-b"),
        ],
    )
    connector = FakeConnector()
    state = State(context=ClusterContext(cluster=cluster), connector=connector)

    install_machine_controller(state)
    create_worker_machines(state)

    mc_docs = list(yaml.safe_load_all(state.configuration.get(MACHINE_CONTROLLER_MANIFEST)))
    assert "Deployment" in [d["kind"] for d in mc_docs if d]

    workers = list(yaml.safe_load_all(state.configuration.get(WORKERS_MANIFEST)))
    assert [w["metadata"]["name"] for w in workers] == ["pool-a", "pool-b"]
    assert workers[0]["spec"]["replicas"] == 2

    applies = [c for c in connector.commands(LEADER) if "kubectl apply" in c]
    assert len(applies) == 2


def test_no_workers_skips_apply(state, connector):
    create_worker_machines(state)
    assert connector.connections == []


def test_create_join_token_records_command(cluster):
    connector = FakeConnector(responses={
        LEADER: {"kubeadm token create": ("kubeadm join 10.0.0.1:6443 --token abc\n", "", 0)},
    })
    state = State(context=ClusterContext(cluster=cluster), connector=connector)

    create_join_token(state)

    assert state.join_command == "kubeadm join 10.0.0.1:6443 --token abc"
