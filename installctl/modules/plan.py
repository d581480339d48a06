"""Plan building.

A plan is rendered from ``templates/plan.yaml.j2`` with the requested group
sizes, parsed back with PyYAML and then overlaid with the cluster identity and
the provisioner selection. Updates never re-render: the request is merged onto
the stored plan so that anything the request does not carry (node addresses,
the load balanced FQDN) survives.

Failures raise :class:`~installctl.errors.BuildError`; callers only store a
plan once it has been built completely.
"""

import copy
import logging
import os
from typing import Optional

import yaml
from jinja2 import (
    Environment,
    FileSystemLoader,
    TemplateNotFound,
    TemplateSyntaxError,
    UndefinedError,
    StrictUndefined
)

from installctl.errors import BuildError
from installctl.modules.models import (
    ClusterRecord,
    CurrentState,
    Node,
    NodeGroup,
    Plan,
    Provisioner,
    ProvisionerCredentials,
)
from installctl.modules.providers import get_provider
from installctl.modules.schemas import ClusterRequest

logger = logging.getLogger("installctl.plan")

PLAN_TEMPLATE = 'plan.yaml.j2'


def get_template_path() -> str:
    """Get the absolute path to the templates directory."""
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), 'templates')


def render_plan_template(etcd_nodes: int, master_nodes: int, worker_nodes: int, ingress_nodes: int,
                         template_dir: Optional[str] = None) -> str:
    """Render the plan template for the given group sizes.

    Raises:
        BuildError: If the template is missing, malformed or needs a variable
            that was not supplied
    """
    env = Environment(
        loader=FileSystemLoader(template_dir or get_template_path()),
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=StrictUndefined
    )
    try:
        template = env.get_template(PLAN_TEMPLATE)
        return template.render(
            etcd_nodes=etcd_nodes,
            master_nodes=master_nodes,
            worker_nodes=worker_nodes,
            ingress_nodes=ingress_nodes,
        )
    except TemplateNotFound as e:
        raise BuildError(f"plan template not found: {e}") from e
    except TemplateSyntaxError as e:
        raise BuildError(f"plan template syntax error: {e}") from e
    except UndefinedError as e:
        raise BuildError(f"missing plan template variable: {e}") from e


def read_plan(text: str) -> Plan:
    """Decode a rendered plan."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise BuildError(f"could not read plan: {e}") from e
    if not isinstance(data, dict):
        raise BuildError("could not read plan: expected a mapping at the top level")
    try:
        return Plan.from_dict(data)
    except (TypeError, ValueError, AttributeError) as e:
        raise BuildError(f"could not read plan: {e}") from e


def _provider_for(request: ClusterRequest):
    provider = get_provider(request.provisioner.provider)
    if provider is None:
        raise BuildError(f"unknown provisioner.provider '{request.provisioner.provider}'")
    return provider


def build_plan(request: ClusterRequest, template_dir: Optional[str] = None) -> Plan:
    """Expand a validated create request into a plan."""
    provider = _provider_for(request)
    text = render_plan_template(
        etcd_nodes=request.etcd_count,
        master_nodes=request.master_count,
        worker_nodes=request.worker_count,
        ingress_nodes=request.ingress_count,
        template_dir=template_dir,
    )
    plan = read_plan(text)
    plan.cluster.name = request.name
    if request.cluster_ip:
        plan.master.load_balanced_fqdn = request.cluster_ip
    plan.provisioner = Provisioner(
        provider=provider.name,
        options=provider.build_options(request.provisioner.options),
    )
    return plan


def build_credentials(request: ClusterRequest) -> ProvisionerCredentials:
    provider = _provider_for(request)
    return ProvisionerCredentials(
        provider=provider.name,
        secrets=provider.build_credentials(request.provisioner.options),
    )


def _resize(group: NodeGroup, count: int) -> None:
    """Set a group's size, keeping existing nodes and padding with placeholders."""
    group.expected_count = count
    if len(group.nodes) > count:
        del group.nodes[count:]
    while len(group.nodes) < count:
        group.nodes.append(Node())


def merge_plan(existing: Plan, request: ClusterRequest) -> Plan:
    """Apply a validated update to a copy of the stored plan.

    The cluster name and the etcd group are left alone; both are identity
    fields that validation has already held equal.
    """
    provider = _provider_for(request)
    plan = copy.deepcopy(existing)
    _resize(plan.master, request.master_count)
    _resize(plan.worker, request.worker_count)
    _resize(plan.ingress, request.ingress_count)
    if request.cluster_ip:
        plan.master.load_balanced_fqdn = request.cluster_ip

    options = provider.build_options(request.provisioner.options)
    if plan.provisioner.provider == provider.name:
        plan.provisioner.options.update(options)
    else:
        plan.provisioner = Provisioner(provider=provider.name, options=options)
    return plan


def build_record(request: ClusterRequest, template_dir: Optional[str] = None) -> ClusterRecord:
    """Build the record stored for a new cluster: planned, gate set, generation 1."""
    record = ClusterRecord(
        name=request.name,
        desired_state=request.desired_state,
        current_state=CurrentState.PLANNED.value,
        plan=build_plan(request, template_dir=template_dir),
        credentials=build_credentials(request),
        can_continue=True,
        generation=1,
    )
    logger.debug(f"Built plan for cluster {request.name}")
    return record


def merge_record(existing: ClusterRecord, request: ClusterRequest) -> ClusterRecord:
    """Build the record stored after an update of ``existing``."""
    record = existing.copy()
    record.desired_state = request.desired_state
    record.current_state = CurrentState.PLANNED.value
    record.plan = merge_plan(existing.plan, request)
    record.credentials = build_credentials(request)
    record.can_continue = True
    record.generation = existing.generation + 1
    return record
