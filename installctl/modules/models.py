"""
Data models for cluster records.

A record holds the operator's desired state, the plan derived from it, the
provisioner credentials and the lifecycle state reported by the reconciler.
Records round-trip through plain dicts so every store backend can persist them
as JSON.
"""
import copy
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List


class DesiredState(str, Enum):
    """States an operator can ask for."""
    INSTALLED = 'installed'
    DESTROYED = 'destroyed'


class CurrentState(str, Enum):
    """States reported for a cluster. The reconciler may report others."""
    PLANNED = 'planned'
    INSTALLING = 'installing'
    INSTALLED = 'installed'
    DESTROYING = 'destroying'
    DESTROYED = 'destroyed'
    ERROR = 'error'


@dataclass
class Node:
    """A host in one of the plan's node groups."""
    host: str = ''
    ip: str = ''
    internalip: str = ''
    labels: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Node':
        data = data or {}
        return cls(
            host=data.get('host') or '',
            ip=data.get('ip') or '',
            internalip=data.get('internalip') or '',
            labels=dict(data.get('labels') or {}),
        )


@dataclass
class NodeGroup:
    """A group of nodes sharing a role."""
    expected_count: int = 0
    nodes: List[Node] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NodeGroup':
        data = data or {}
        return cls(
            expected_count=int(data.get('expected_count') or 0),
            nodes=[Node.from_dict(n) for n in data.get('nodes') or []],
        )


@dataclass
class MasterNodeGroup(NodeGroup):
    """Master nodes sit behind a load balanced address assigned at install time."""
    load_balanced_fqdn: str = ''
    load_balanced_short_name: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MasterNodeGroup':
        data = data or {}
        group = NodeGroup.from_dict(data)
        return cls(
            expected_count=group.expected_count,
            nodes=group.nodes,
            load_balanced_fqdn=data.get('load_balanced_fqdn') or '',
            load_balanced_short_name=data.get('load_balanced_short_name') or '',
        )


@dataclass
class ClusterInfo:
    name: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClusterInfo':
        data = data or {}
        return cls(name=data.get('name') or '')


@dataclass
class Provisioner:
    """Provider selection plus the provider options that are safe to echo back."""
    provider: str = ''
    options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Provisioner':
        data = data or {}
        return cls(
            provider=data.get('provider') or '',
            options=dict(data.get('options') or {}),
        )


@dataclass
class Plan:
    """Expanded infrastructure topology for a cluster."""
    cluster: ClusterInfo = field(default_factory=ClusterInfo)
    etcd: NodeGroup = field(default_factory=NodeGroup)
    master: MasterNodeGroup = field(default_factory=MasterNodeGroup)
    worker: NodeGroup = field(default_factory=NodeGroup)
    ingress: NodeGroup = field(default_factory=NodeGroup)
    provisioner: Provisioner = field(default_factory=Provisioner)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Plan':
        data = data or {}
        return cls(
            cluster=ClusterInfo.from_dict(data.get('cluster')),
            etcd=NodeGroup.from_dict(data.get('etcd')),
            master=MasterNodeGroup.from_dict(data.get('master')),
            worker=NodeGroup.from_dict(data.get('worker')),
            ingress=NodeGroup.from_dict(data.get('ingress')),
            provisioner=Provisioner.from_dict(data.get('provisioner')),
        )

    def groups(self) -> Dict[str, NodeGroup]:
        """Node groups keyed by role."""
        return {
            'etcd': self.etcd,
            'master': self.master,
            'worker': self.worker,
            'ingress': self.ingress,
        }


@dataclass
class ProvisionerCredentials:
    """Provider secret material. Kept out of the plan so it is never echoed."""
    provider: str = ''
    secrets: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProvisionerCredentials':
        data = data or {}
        return cls(
            provider=data.get('provider') or '',
            secrets=dict(data.get('secrets') or {}),
        )


@dataclass
class ClusterRecord:
    """One cluster's stored state.

    ``can_continue`` is the continuation gate: set on every accepted mutation,
    cleared by the reconciler when it takes the work. ``generation`` is bumped
    alongside it so the reconciler can tell which mutation it converged.
    """
    name: str = ''
    desired_state: str = DesiredState.INSTALLED.value
    current_state: str = CurrentState.PLANNED.value
    plan: Plan = field(default_factory=Plan)
    credentials: ProvisionerCredentials = field(default_factory=ProvisionerCredentials)
    can_continue: bool = False
    generation: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClusterRecord':
        data = data or {}
        return cls(
            name=data.get('name') or '',
            desired_state=data.get('desired_state') or '',
            current_state=data.get('current_state') or '',
            plan=Plan.from_dict(data.get('plan')),
            credentials=ProvisionerCredentials.from_dict(data.get('credentials')),
            can_continue=bool(data.get('can_continue', False)),
            generation=int(data.get('generation') or 0),
        )

    def copy(self) -> 'ClusterRecord':
        return copy.deepcopy(self)
