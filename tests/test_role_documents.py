"""Tests for documents.role module."""

import sys
import xml.etree.ElementTree as ET
from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from azure_vm_driver.documents.base import to_bytes
from azure_vm_driver.documents.provisioning import create_extension, create_linux_provisioning_config, create_network_config
from azure_vm_driver.documents.role import (
    NETWORK_CONFIGURATION,
    PROVISIONING_CONF_MISSING_ERROR,
    ConfigurationSet,
    InputEndpoint,
    RoleBuilder,
    VMDeployment,
    deployment_document,
    parse_deployment,
    role_operation_document,
)
from azure_vm_driver.errors import ValidationError

NS = '{http://schemas.microsoft.com/windowsazure}'


def make_builder():
    builder = RoleBuilder('myvm01', 'Small')
    builder.set_os_disk('coreos-stable', 'https://store.blob.core.windows.net/vhds/myvm01.vhd')
    builder.add_configuration_set(create_linux_provisioning_config('myvm01', 'azureuser', 'Secret123'))
    builder.add_configuration_set(create_network_config('Linux', 22))
    return builder


class TestRoleBuilder:
    """Tests for RoleBuilder validation."""

    def test_build_complete_role(self):
        role = make_builder().build()
        assert role.role_name == 'myvm01'
        assert role.role_type == 'PersistentVMRole'
        assert role.provision_guest_agent is True
        assert len(role.provisioning_sets) == 1
        assert len(role.network_sets) == 1

    def test_role_is_immutable(self):
        role = make_builder().build()
        with pytest.raises(FrozenInstanceError):
            role.role_size = 'Large'

    def test_builder_changes_do_not_leak_into_role(self):
        """Built role keeps its own copy of the configuration sets."""
        builder = make_builder()
        role = builder.build()
        builder.add_endpoint(InputEndpoint('http', 'tcp', 80, 80))
        assert len(role.network_sets[0].input_endpoints) == 1

    def test_provisioning_required(self):
        builder = RoleBuilder('myvm01', 'Small')
        builder.set_os_disk('coreos-stable', 'https://store.blob.core.windows.net/vhds/myvm01.vhd')
        builder.add_configuration_set(create_network_config('Linux', 22))
        with pytest.raises(ValidationError) as exc_info:
            builder.build()
        assert exc_info.value.message == PROVISIONING_CONF_MISSING_ERROR

    def test_duplicate_provisioning_rejected(self):
        builder = make_builder()
        builder.add_configuration_set(create_linux_provisioning_config('myvm01', 'other', 'Secret123'))
        with pytest.raises(ValidationError, match='expected exactly one'):
            builder.build()

    def test_duplicate_network_rejected(self):
        builder = make_builder()
        builder.add_configuration_set(create_network_config('Linux', 2222))
        with pytest.raises(ValidationError, match='expected at most one'):
            builder.build()

    def test_os_disk_required(self):
        builder = RoleBuilder('myvm01', 'Small')
        builder.add_configuration_set(create_linux_provisioning_config('myvm01', 'azureuser', 'Secret123'))
        with pytest.raises(ValidationError, match='no OS virtual hard disk'):
            builder.build()

    def test_role_size_required(self):
        builder = RoleBuilder('myvm01', '')
        with pytest.raises(ValidationError, match='no role size'):
            builder.build()

    def test_add_endpoint_only_touches_network_sets(self):
        builder = make_builder()
        builder.add_endpoint(InputEndpoint('http', 'tcp', 80, 8080))
        provisioning, network = builder.configuration_sets
        assert provisioning.input_endpoints == ()
        assert [ep.name for ep in network.input_endpoints] == ['ssh', 'http']

    def test_add_endpoint_without_sets(self):
        with pytest.raises(ValidationError) as exc_info:
            RoleBuilder('myvm01', 'Small').add_endpoint(InputEndpoint('http', 'tcp', 80, 80))
        assert exc_info.value.message == PROVISIONING_CONF_MISSING_ERROR

    def test_use_certificate(self):
        builder = make_builder().use_certificate('/tmp/cert.pem')
        role = builder.build()
        assert role.use_cert_auth is True
        assert role.cert_path == '/tmp/cert.pem'


class TestDeploymentDocument:
    """Tests for deployment serialization."""

    def test_schema_order(self):
        """Role children are written in the order the provider expects."""
        builder = make_builder()
        builder.add_extension(create_extension('Ext', 'Pub', '1.0', 'Ext', public_config='{}'))
        doc = ET.fromstring(to_bytes(deployment_document(VMDeployment.for_role(builder.build()))))

        role = doc.find(f'{NS}RoleList/{NS}Role')
        tags = [child.tag.replace(NS, '') for child in role]
        assert tags == [
            'RoleName',
            'RoleType',
            'ConfigurationSets',
            'ResourceExtensionReferences',
            'OSVirtualHardDisk',
            'RoleSize',
            'ProvisionGuestAgent',
        ]
        assert role.find(f'{NS}ProvisionGuestAgent').text == 'true'

    def test_local_settings_not_serialized(self):
        role = make_builder().use_certificate('/tmp/cert.pem').build()
        body = to_bytes(deployment_document(VMDeployment.for_role(role)))
        assert b'/tmp/cert.pem' not in body

    def test_provisioning_fields(self):
        doc = ET.fromstring(to_bytes(deployment_document(VMDeployment.for_role(make_builder().build()))))
        cs = doc.find(f'{NS}RoleList/{NS}Role/{NS}ConfigurationSets/{NS}ConfigurationSet')
        assert cs.find(f'{NS}ConfigurationSetType').text == 'LinuxProvisioningConfiguration'
        assert cs.find(f'{NS}HostName').text == 'myvm01'
        assert cs.find(f'{NS}UserName').text == 'azureuser'
        assert cs.find(f'{NS}UserPassword').text == 'Secret123'
        assert cs.find(f'{NS}DisableSshPasswordAuthentication').text == 'false'

    def test_role_operation_document(self):
        doc = ET.fromstring(to_bytes(role_operation_document('ShutdownRoleOperation')))
        assert doc.tag == f'{NS}ShutdownRoleOperation'
        assert doc.find(f'{NS}OperationType').text == 'ShutdownRoleOperation'


class TestParseDeployment:
    """Tests for parsing deployment responses."""

    def test_parse_written_deployment(self):
        """Documents written by the client parse back to an equal role."""
        role = make_builder().build()
        parsed = parse_deployment(to_bytes(deployment_document(VMDeployment.for_role(role))))
        assert parsed.name == 'myvm01'
        assert parsed.roles[0] == role

    def test_network_set_endpoints(self):
        role = make_builder().build()
        parsed = parse_deployment(to_bytes(deployment_document(VMDeployment.for_role(role))))
        network = parsed.roles[0].network_sets[0]
        assert network == ConfigurationSet(
            configuration_set_type=NETWORK_CONFIGURATION,
            input_endpoints=(InputEndpoint('ssh', 'tcp', 22, 22),),
        )
