"""Apply node labels from a cluster plan with the label-nodes playbook."""
import logging
import os
from typing import Dict, List, Optional

import ansible_runner

from installctl.errors import BackendError
from installctl.modules.models import Plan

logger = logging.getLogger("installctl.labels")

LABEL_PLAYBOOK = "label-nodes.yaml"
LABELED_GROUPS = ("master", "worker", "ingress")


def get_playbook_path() -> str:
    package_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.path.join(package_dir, "ansible", LABEL_PLAYBOOK)


def build_node_labels(plan: Plan) -> Dict[str, List[str]]:
    """Labels per inventory hostname, as ``key=value`` strings.

    Hosts without a hostname or without labels are left out; the playbook
    skips any host that has no entry. A host listed in several groups gets
    the union of its labels.
    """
    node_labels: Dict[str, Dict[str, str]] = {}
    for group_name in LABELED_GROUPS:
        group = plan.groups()[group_name]
        for node in group.nodes:
            if not node.host or not node.labels:
                continue
            node_labels.setdefault(node.host, {}).update(node.labels)
    return {
        host: [f"{key}={value}" for key, value in sorted(labels.items())]
        for host, labels in node_labels.items()
    }


def label_nodes(plan: Plan, inventory_path: str, kubeconfig_path: str,
                private_data_dir: str, playbook_path: Optional[str] = None) -> Dict[str, str]:
    """Run the label playbook against ``inventory_path``.

    Returns:
        Dict with the run status, or status "skipped" when no node has labels

    Raises:
        BackendError: If the playbook run does not succeed
    """
    node_labels = build_node_labels(plan)
    if not node_labels:
        logger.info(f"No node labels defined for cluster {plan.cluster.name}, skipping")
        return {"status": "skipped"}

    playbook = playbook_path or get_playbook_path()
    logger.info(f"Labeling {len(node_labels)} node(s) of cluster {plan.cluster.name}")
    result = ansible_runner.run(
        private_data_dir=private_data_dir,
        playbook=playbook,
        inventory=inventory_path,
        extravars={
            "node_labels": node_labels,
            "kubernetes_kubeconfig_path": kubeconfig_path,
        },
        quiet=True,
    )
    if result.status != "successful" or result.rc != 0:
        raise BackendError(
            f"labeling nodes of cluster {plan.cluster.name} failed: status={result.status}, rc={result.rc}"
        )
    return {"status": result.status}
