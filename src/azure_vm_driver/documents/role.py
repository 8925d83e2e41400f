"""Role and deployment documents.

A Role is immutable once built. RoleBuilder accumulates configuration
sets, endpoints and extensions and validates them in build(), so a
partially configured role never reaches serialization.
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field, replace
from typing import Optional

from azure_vm_driver.documents.base import bool_text, int_text, new_document, parse, sub, text
from azure_vm_driver.errors import ValidationError

LINUX_PROVISIONING = 'LinuxProvisioningConfiguration'
NETWORK_CONFIGURATION = 'NetworkConfiguration'
PERSISTENT_VM_ROLE = 'PersistentVMRole'
PRODUCTION_SLOT = 'Production'

START_ROLE_OPERATION = 'StartRoleOperation'
SHUTDOWN_ROLE_OPERATION = 'ShutdownRoleOperation'
RESTART_ROLE_OPERATION = 'RestartRoleOperation'

PROVISIONING_CONF_MISSING_ERROR = "You should set azure VM provisioning config first"


@dataclass(frozen=True)
class InputEndpoint:
    """Port exposed on the cloud service and forwarded to the VM."""
    name: str
    protocol: str
    port: int
    local_port: int


@dataclass(frozen=True)
class PublicKey:
    fingerprint: str
    path: str


@dataclass(frozen=True)
class ConfigurationSet:
    """One ConfigurationSet element.

    Provisioning sets use host/user/password/SSH fields; network sets use
    input_endpoints. The set type picks which fields are serialized.
    """
    configuration_set_type: str
    host_name: str = ''
    user_name: str = ''
    user_password: str = ''
    disable_ssh_password_authentication: Optional[bool] = None
    public_keys: tuple[PublicKey, ...] = ()
    input_endpoints: tuple[InputEndpoint, ...] = ()

    @property
    def is_provisioning(self) -> bool:
        return self.configuration_set_type == LINUX_PROVISIONING

    @property
    def is_network(self) -> bool:
        return self.configuration_set_type == NETWORK_CONFIGURATION

    def with_endpoint(self, endpoint: InputEndpoint) -> 'ConfigurationSet':
        return replace(self, input_endpoints=self.input_endpoints + (endpoint,))


@dataclass(frozen=True)
class ResourceExtensionParameter:
    key: str
    value: str
    type: str  # Public or Private


@dataclass(frozen=True)
class ResourceExtensionReference:
    reference_name: str
    publisher: str
    name: str
    version: str
    state: str = ''
    parameters: tuple[ResourceExtensionParameter, ...] = ()


@dataclass(frozen=True)
class OSVirtualHardDisk:
    source_image_name: str = ''
    media_link: str = ''
    disk_name: str = ''
    os: str = ''


@dataclass(frozen=True)
class Role:
    """Immutable VM role definition.

    use_cert_auth and cert_path are local settings for the create workflow
    and are never serialized.
    """
    role_name: str
    role_size: str = ''
    role_type: str = PERSISTENT_VM_ROLE
    configuration_sets: tuple[ConfigurationSet, ...] = ()
    resource_extension_references: tuple[ResourceExtensionReference, ...] = ()
    os_virtual_hard_disk: Optional[OSVirtualHardDisk] = None
    provision_guest_agent: Optional[bool] = None
    use_cert_auth: bool = field(default=False, compare=False)
    cert_path: str = field(default='', compare=False)

    @property
    def provisioning_sets(self) -> list[ConfigurationSet]:
        return [cs for cs in self.configuration_sets if cs.is_provisioning]

    @property
    def network_sets(self) -> list[ConfigurationSet]:
        return [cs for cs in self.configuration_sets if cs.is_network]


class RoleBuilder:
    """Mutable builder for a Role about to be created."""

    def __init__(
        self,
        role_name: str,
        role_size: str,
        role_type: str = PERSISTENT_VM_ROLE,
        provision_guest_agent: bool = True,
    ):
        self.role_name = role_name
        self.role_size = role_size
        self.role_type = role_type
        self.provision_guest_agent = provision_guest_agent
        self.os_virtual_hard_disk: Optional[OSVirtualHardDisk] = None
        self.configuration_sets: list[ConfigurationSet] = []
        self.extensions: list[ResourceExtensionReference] = []
        self.use_cert_auth = False
        self.cert_path = ''

    def set_os_disk(self, source_image_name: str, media_link: str) -> 'RoleBuilder':
        self.os_virtual_hard_disk = OSVirtualHardDisk(
            source_image_name=source_image_name,
            media_link=media_link,
        )
        return self

    def add_configuration_set(self, configuration_set: ConfigurationSet) -> 'RoleBuilder':
        self.configuration_sets.append(configuration_set)
        return self

    def add_endpoint(self, endpoint: InputEndpoint) -> 'RoleBuilder':
        """Add an endpoint to every network configuration set.

        Raises:
            ValidationError: If no configuration sets were added yet
        """
        if not self.configuration_sets:
            raise ValidationError(PROVISIONING_CONF_MISSING_ERROR)
        self.configuration_sets = [
            cs.with_endpoint(endpoint) if cs.is_network else cs
            for cs in self.configuration_sets
        ]
        return self

    def add_extension(self, extension: ResourceExtensionReference) -> 'RoleBuilder':
        self.extensions.append(extension)
        return self

    def use_certificate(self, cert_path: str) -> 'RoleBuilder':
        """Upload cert_path to the hosted service during creation."""
        self.use_cert_auth = True
        self.cert_path = cert_path
        return self

    def build(self) -> Role:
        """Validate and freeze the role.

        Raises:
            ValidationError: If the role is incomplete or has more than one
                provisioning or network configuration set
        """
        if not self.role_name:
            raise ValidationError("Role name is required")
        if not self.role_size:
            raise ValidationError(f"Role '{self.role_name}' has no role size")
        if self.os_virtual_hard_disk is None:
            raise ValidationError(f"Role '{self.role_name}' has no OS virtual hard disk")

        provisioning = [cs for cs in self.configuration_sets if cs.is_provisioning]
        network = [cs for cs in self.configuration_sets if cs.is_network]
        if not provisioning:
            raise ValidationError(PROVISIONING_CONF_MISSING_ERROR)
        if len(provisioning) > 1:
            raise ValidationError(
                f"Role '{self.role_name}' has {len(provisioning)} provisioning "
                "configuration sets, expected exactly one"
            )
        if len(network) > 1:
            raise ValidationError(
                f"Role '{self.role_name}' has {len(network)} network "
                "configuration sets, expected at most one"
            )

        return Role(
            role_name=self.role_name,
            role_size=self.role_size,
            role_type=self.role_type,
            configuration_sets=tuple(self.configuration_sets),
            resource_extension_references=tuple(self.extensions),
            os_virtual_hard_disk=self.os_virtual_hard_disk,
            provision_guest_agent=self.provision_guest_agent,
            use_cert_auth=self.use_cert_auth,
            cert_path=self.cert_path,
        )


@dataclass(frozen=True)
class RoleInstance:
    role_name: str
    instance_name: str = ''
    instance_status: str = ''
    power_state: str = ''
    ip_address: str = ''


@dataclass(frozen=True)
class VMDeployment:
    """Deployment of one or more roles into a hosted service."""
    name: str
    label: str = ''
    deployment_slot: str = PRODUCTION_SLOT
    roles: tuple[Role, ...] = ()
    status: str = ''
    url: str = ''
    role_instances: tuple[RoleInstance, ...] = ()

    @classmethod
    def for_role(cls, role: Role) -> 'VMDeployment':
        return cls(name=role.role_name, label=role.role_name, roles=(role,))


# -----------------------------------------------------------------------------
# Serialization
# -----------------------------------------------------------------------------

def _configuration_set_element(parent: ET.Element, cs: ConfigurationSet) -> None:
    el = sub(parent, 'ConfigurationSet')
    sub(el, 'ConfigurationSetType', cs.configuration_set_type)
    if cs.is_provisioning:
        sub(el, 'HostName', cs.host_name)
        sub(el, 'UserName', cs.user_name)
        sub(el, 'UserPassword', cs.user_password)
        if cs.disable_ssh_password_authentication is not None:
            sub(el, 'DisableSshPasswordAuthentication', cs.disable_ssh_password_authentication)
        if cs.public_keys:
            keys = sub(sub(el, 'SSH'), 'PublicKeys')
            for key in cs.public_keys:
                key_el = sub(keys, 'PublicKey')
                sub(key_el, 'Fingerprint', key.fingerprint)
                sub(key_el, 'Path', key.path)
    if cs.input_endpoints:
        endpoints = sub(el, 'InputEndpoints')
        for ep in cs.input_endpoints:
            ep_el = sub(endpoints, 'InputEndpoint')
            sub(ep_el, 'LocalPort', ep.local_port)
            sub(ep_el, 'Name', ep.name)
            sub(ep_el, 'Port', ep.port)
            sub(ep_el, 'Protocol', ep.protocol)


def role_element(parent: ET.Element, role: Role) -> ET.Element:
    """Append a Role element; child order follows the provider schema."""
    el = sub(parent, 'Role')
    sub(el, 'RoleName', role.role_name)
    sub(el, 'RoleType', role.role_type)

    if role.configuration_sets:
        sets = sub(el, 'ConfigurationSets')
        for cs in role.configuration_sets:
            _configuration_set_element(sets, cs)

    if role.resource_extension_references:
        refs = sub(el, 'ResourceExtensionReferences')
        for ext in role.resource_extension_references:
            ext_el = sub(refs, 'ResourceExtensionReference')
            sub(ext_el, 'ReferenceName', ext.reference_name)
            sub(ext_el, 'Publisher', ext.publisher)
            sub(ext_el, 'Name', ext.name)
            sub(ext_el, 'Version', ext.version)
            if ext.parameters:
                values = sub(ext_el, 'ResourceExtensionParameterValues')
                for param in ext.parameters:
                    p_el = sub(values, 'ResourceExtensionParameterValue')
                    sub(p_el, 'Key', param.key)
                    sub(p_el, 'Value', param.value)
                    sub(p_el, 'Type', param.type)
            if ext.state:
                sub(ext_el, 'State', ext.state)

    if role.os_virtual_hard_disk is not None:
        disk = role.os_virtual_hard_disk
        disk_el = sub(el, 'OSVirtualHardDisk')
        if disk.disk_name:
            sub(disk_el, 'DiskName', disk.disk_name)
        sub(disk_el, 'MediaLink', disk.media_link)
        sub(disk_el, 'SourceImageName', disk.source_image_name)

    if role.role_size:
        sub(el, 'RoleSize', role.role_size)
    if role.provision_guest_agent is not None:
        sub(el, 'ProvisionGuestAgent', role.provision_guest_agent)
    return el


def deployment_document(deployment: VMDeployment) -> ET.Element:
    root = new_document('Deployment')
    sub(root, 'Name', deployment.name)
    sub(root, 'DeploymentSlot', deployment.deployment_slot)
    sub(root, 'Label', deployment.label)
    role_list = sub(root, 'RoleList')
    for role in deployment.roles:
        role_element(role_list, role)
    return root


def role_operation_document(operation_type: str) -> ET.Element:
    """Start/Shutdown/Restart role operation body."""
    root = new_document(operation_type)
    sub(root, 'OperationType', operation_type)
    return root


# -----------------------------------------------------------------------------
# Parsing
# -----------------------------------------------------------------------------

def _parse_configuration_set(el: ET.Element) -> ConfigurationSet:
    endpoints = tuple(
        InputEndpoint(
            name=text(ep, 'Name'),
            protocol=text(ep, 'Protocol'),
            port=int_text(ep, 'Port', 0),
            local_port=int_text(ep, 'LocalPort', 0),
        )
        for ep in el.findall('InputEndpoints/InputEndpoint')
    )
    keys = tuple(
        PublicKey(fingerprint=text(k, 'Fingerprint'), path=text(k, 'Path'))
        for k in el.findall('SSH/PublicKeys/PublicKey')
    )
    return ConfigurationSet(
        configuration_set_type=text(el, 'ConfigurationSetType'),
        host_name=text(el, 'HostName'),
        user_name=text(el, 'UserName'),
        user_password=text(el, 'UserPassword'),
        disable_ssh_password_authentication=bool_text(el, 'DisableSshPasswordAuthentication'),
        public_keys=keys,
        input_endpoints=endpoints,
    )


def parse_role_element(el: ET.Element) -> Role:
    extensions = []
    for ext in el.findall('ResourceExtensionReferences/ResourceExtensionReference'):
        params = tuple(
            ResourceExtensionParameter(key=text(p, 'Key'), value=text(p, 'Value'), type=text(p, 'Type'))
            for p in ext.findall('ResourceExtensionParameterValues/ResourceExtensionParameterValue')
        )
        extensions.append(ResourceExtensionReference(
            reference_name=text(ext, 'ReferenceName'),
            publisher=text(ext, 'Publisher'),
            name=text(ext, 'Name'),
            version=text(ext, 'Version'),
            state=text(ext, 'State'),
            parameters=params,
        ))

    disk_el = el.find('OSVirtualHardDisk')
    disk = None
    if disk_el is not None:
        disk = OSVirtualHardDisk(
            source_image_name=text(disk_el, 'SourceImageName'),
            media_link=text(disk_el, 'MediaLink'),
            disk_name=text(disk_el, 'DiskName'),
            os=text(disk_el, 'OS'),
        )

    return Role(
        role_name=text(el, 'RoleName'),
        role_size=text(el, 'RoleSize'),
        role_type=text(el, 'RoleType', PERSISTENT_VM_ROLE),
        configuration_sets=tuple(
            _parse_configuration_set(cs) for cs in el.findall('ConfigurationSets/ConfigurationSet')
        ),
        resource_extension_references=tuple(extensions),
        os_virtual_hard_disk=disk,
        provision_guest_agent=bool_text(el, 'ProvisionGuestAgent'),
    )


def parse_role(data: bytes) -> Role:
    """Parse a GET role response (PersistentVMRole root)."""
    return parse_role_element(parse(data))


def parse_deployment(data: bytes) -> VMDeployment:
    root = parse(data)
    instances = tuple(
        RoleInstance(
            role_name=text(ri, 'RoleName'),
            instance_name=text(ri, 'InstanceName'),
            instance_status=text(ri, 'InstanceStatus'),
            power_state=text(ri, 'PowerState'),
            ip_address=text(ri, 'IpAddress'),
        )
        for ri in root.findall('RoleInstanceList/RoleInstance')
    )
    return VMDeployment(
        name=text(root, 'Name'),
        label=text(root, 'Label'),
        deployment_slot=text(root, 'DeploymentSlot', PRODUCTION_SLOT),
        roles=tuple(parse_role_element(r) for r in root.findall('RoleList/Role')),
        status=text(root, 'Status'),
        url=text(root, 'Url'),
        role_instances=instances,
    )
