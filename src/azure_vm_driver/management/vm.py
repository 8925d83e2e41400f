"""Virtual machine lifecycle workflows.

Configuration assembly (create_vm_configuration and the add/set helpers)
works on a RoleBuilder; create_vm takes the built, immutable Role.

create_vm runs these steps, each a submit followed by a blocking wait:
1. Create the hosted service
2. Upload the service certificate (only when the role uses cert auth)
3. Submit the deployment

If step 2 or 3 fails, the hosted service is deleted again (best effort)
and the original error is raised. A failed delete is attached to that
error as a CompensationFailed, never raised in its place.

Network and VM operations on one subscription are not safe to run
concurrently; callers must serialize work on the same hosted service,
deployment or network configuration.
"""

import logging
from typing import Callable, Optional

from azure_vm_driver.common import AsyncOperation, new_unique_token, require, timestamp_suffix
from azure_vm_driver.documents.base import to_bytes
from azure_vm_driver.documents.provisioning import (
    DOCKER_EXTENSION_NAME,
    DOCKER_EXTENSION_PUBLISHER,
    DOCKER_EXTENSION_VERSION,
    OS_LINUX,
    certificate_document,
    create_endpoint,
    create_extension,
    create_linux_provisioning_config,
    create_network_config,
    docker_public_config,
    verify_dns_name,
)
from azure_vm_driver.documents.role import (
    RESTART_ROLE_OPERATION,
    SHUTDOWN_ROLE_OPERATION,
    START_ROLE_OPERATION,
    Role,
    RoleBuilder,
    VMDeployment,
    deployment_document,
    parse_deployment,
    parse_role,
    role_operation_document,
)
from azure_vm_driver.documents.services import RoleSize, parse_role_sizes
from azure_vm_driver.errors import (
    CompensationFailed,
    ManagementError,
    ParameterNotSpecifiedError,
    ValidationError,
)
from azure_vm_driver.management.workflow import (
    CERT_UPLOADED,
    DEPLOYMENT_SUBMITTED,
    SERVICE_CREATED,
    WorkflowState,
)

logger = logging.getLogger(__name__)

INVALID_ROLE_SIZE_ERROR = "Invalid role size: {size}. Available role sizes: {available}"
INVALID_ROLE_SIZE_IN_LOCATION_ERROR = "Role size: {size} not available in location: {location}."

STORAGE_SERVICE_PREFIX = 'portalvhds'


class VmClient:
    """VM workflows on top of a ManagementClient."""

    def __init__(self, client):
        self.client = client

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def create_vm(self, role: Role, dns_name: str, location: str) -> WorkflowState:
        """Create a hosted service and deploy role into it.

        Documents are serialized and the certificate is read before the
        first remote call, so bad input fails without side effects.

        Returns:
            Finished WorkflowState

        Raises:
            ValidationError: Bad input (no remote call made)
            RemoteOperationFailed, OperationTimeout, TransportError: A step
                failed; ``workflow`` and ``compensation_failures`` are set
        """
        if role is None:
            raise ParameterNotSpecifiedError('role')
        require(dns_name=dns_name, location=location)
        verify_dns_name(dns_name)

        deployment_body = to_bytes(deployment_document(VMDeployment.for_role(role)))
        cert_body: Optional[bytes] = None
        if role.use_cert_auth:
            cert_body = to_bytes(certificate_document(role.cert_path))

        steps = [SERVICE_CREATED]
        if cert_body is not None:
            steps.append(CERT_UPLOADED)
        steps.append(DEPLOYMENT_SUBMITTED)

        state = WorkflowState('create_vm', dns_name, steps)
        state.start()
        transport = self.client.transport
        paths = self.client.paths

        # Nothing to roll back if the hosted service itself fails
        self._run_step(
            state,
            SERVICE_CREATED,
            lambda: self.client.hosted_services.create(dns_name, location),
        )

        def rollback(cause: ManagementError) -> None:
            self._delete_hosted_service(state, dns_name, cause)

        if cert_body is not None:
            self._run_step(
                state,
                CERT_UPLOADED,
                lambda: transport.post(paths.certificates.format(service=dns_name), cert_body),
                rollback,
            )

        self._run_step(
            state,
            DEPLOYMENT_SUBMITTED,
            lambda: transport.post(paths.deployments.format(service=dns_name), deployment_body),
            rollback,
        )

        state.finish()
        return state

    def _run_step(
        self,
        state: WorkflowState,
        name: str,
        submit: Callable[[], str],
        rollback: Optional[Callable[[ManagementError], None]] = None,
    ) -> AsyncOperation:
        step = state.begin(name)
        try:
            request_id = submit()
            step.submitted(request_id)
            operation = self.client.tracker.wait(request_id)
        except ManagementError as e:
            step.fail(str(e))
            e.workflow = state
            logger.error(f"[{state.workflow}] {state.target}: {name} failed: {e}")
            if rollback is not None:
                rollback(e)
            raise
        state.advance(name)
        return operation

    def _delete_hosted_service(self, state: WorkflowState, dns_name: str, cause: ManagementError) -> None:
        """Best-effort removal of the hosted service created by create_vm."""
        logger.warning(f"[{state.workflow}] Rolling back hosted service '{dns_name}'")
        try:
            request_id = self.client.hosted_services.delete(dns_name)
            self.client.tracker.wait(request_id)
        except ManagementError as e:
            failure = CompensationFailed(f"Delete hosted service '{dns_name}'", e)
            cause.compensation_failures.append(failure)
            logger.error(f"[{state.workflow}] {failure.message}")
            return
        state.step(SERVICE_CREATED).mark_compensated()

    # -------------------------------------------------------------------------
    # Configuration assembly
    # -------------------------------------------------------------------------

    def create_vm_configuration(
        self,
        dns_name: str,
        instance_size: str,
        image_name: str,
        location: str,
    ) -> RoleBuilder:
        """Start a role definition for dns_name.

        The instance size is checked against the location before the image
        is resolved or any storage is touched.
        """
        require(dns_name=dns_name, instance_size=instance_size, image_name=image_name, location=location)
        verify_dns_name(dns_name)

        location_info = self.client.locations.get(location)
        if instance_size not in location_info.available_instance_sizes:
            raise ValidationError(
                INVALID_ROLE_SIZE_IN_LOCATION_ERROR.format(size=instance_size, location=location)
            )

        self.client.images.resolve(image_name)
        media_link = self._get_vhd_media_link(dns_name, location)

        builder = RoleBuilder(dns_name, instance_size)
        builder.set_os_disk(image_name, media_link)
        return builder

    def _get_vhd_media_link(self, dns_name: str, location: str) -> str:
        storage = self.client.storage
        service = storage.get_by_location(location)
        if service is None:
            name = STORAGE_SERVICE_PREFIX + new_unique_token()
            logger.info(f"No storage service in {location}, creating '{name}'")
            service = storage.create(name, location)

        blob_endpoint = storage.blob_endpoint(service)
        return f"{blob_endpoint}vhds/{dns_name}-{timestamp_suffix()}.vhd"

    def add_linux_provisioning_config(
        self,
        builder: RoleBuilder,
        user_name: str,
        password: str = '',
        cert_path: str = '',
        ssh_port: int = 22,
    ) -> RoleBuilder:
        """Add Linux provisioning and an ssh endpoint.

        Without a password, SSH key auth from cert_path is the only login
        method and password authentication is disabled.
        """
        if builder is None:
            raise ParameterNotSpecifiedError('builder')
        require(user_name=user_name)

        provisioning = create_linux_provisioning_config(builder.role_name, user_name, password, cert_path)
        network = create_network_config(OS_LINUX, ssh_port)
        builder.add_configuration_set(provisioning)
        builder.add_configuration_set(network)

        if cert_path:
            builder.use_certificate(cert_path)
        return builder

    def set_vm_extension(
        self,
        builder: RoleBuilder,
        name: str,
        publisher: str,
        version: str,
        reference_name: str,
        state: str = '',
        public_config: str = '',
        private_config: str = '',
    ) -> RoleBuilder:
        if builder is None:
            raise ParameterNotSpecifiedError('builder')
        require(name=name, publisher=publisher, version=version, reference_name=reference_name)

        extension = create_extension(
            name, publisher, version, reference_name, state, public_config, private_config
        )
        return builder.add_extension(extension)

    def set_docker_extension(self, builder: RoleBuilder, docker_port: int, version: str = '') -> RoleBuilder:
        """Open docker_port and enable the Docker VM extension."""
        if builder is None:
            raise ParameterNotSpecifiedError('builder')

        builder.add_endpoint(create_endpoint('docker', 'tcp', docker_port, docker_port))
        return self.set_vm_extension(
            builder,
            DOCKER_EXTENSION_NAME,
            DOCKER_EXTENSION_PUBLISHER,
            version or DOCKER_EXTENSION_VERSION,
            DOCKER_EXTENSION_NAME,
            state='enable',
            public_config=docker_public_config(docker_port),
            private_config='{}',
        )

    # -------------------------------------------------------------------------
    # Deployments and roles
    # -------------------------------------------------------------------------

    def get_vm_deployment(self, cloud_service_name: str, deployment_name: str) -> VMDeployment:
        require(cloud_service_name=cloud_service_name, deployment_name=deployment_name)
        path = self.client.paths.deployment.format(service=cloud_service_name, deployment=deployment_name)
        return parse_deployment(self.client.transport.get(path))

    def delete_vm_deployment(self, cloud_service_name: str, deployment_name: str) -> AsyncOperation:
        """Delete a deployment together with its disks and media."""
        require(cloud_service_name=cloud_service_name, deployment_name=deployment_name)
        path = self.client.paths.delete_deployment.format(
            service=cloud_service_name, deployment=deployment_name
        )
        logger.info(f"Deleting deployment '{deployment_name}' of '{cloud_service_name}'")
        return self.client.tracker.wait(self.client.transport.delete(path))

    def get_role(self, cloud_service_name: str, deployment_name: str, role_name: str) -> Role:
        require(cloud_service_name=cloud_service_name, deployment_name=deployment_name, role_name=role_name)
        path = self.client.paths.role.format(
            service=cloud_service_name, deployment=deployment_name, role=role_name
        )
        return parse_role(self.client.transport.get(path))

    def _role_operation(
        self,
        operation_type: str,
        cloud_service_name: str,
        deployment_name: str,
        role_name: str,
    ) -> AsyncOperation:
        require(cloud_service_name=cloud_service_name, deployment_name=deployment_name, role_name=role_name)
        body = to_bytes(role_operation_document(operation_type))
        path = self.client.paths.role_operations.format(
            service=cloud_service_name, deployment=deployment_name, role=role_name
        )
        logger.info(f"{operation_type} for role '{role_name}' in '{cloud_service_name}/{deployment_name}'")
        return self.client.tracker.wait(self.client.transport.post(path, body))

    def start_role(self, cloud_service_name: str, deployment_name: str, role_name: str) -> AsyncOperation:
        return self._role_operation(START_ROLE_OPERATION, cloud_service_name, deployment_name, role_name)

    def shutdown_role(self, cloud_service_name: str, deployment_name: str, role_name: str) -> AsyncOperation:
        return self._role_operation(SHUTDOWN_ROLE_OPERATION, cloud_service_name, deployment_name, role_name)

    def restart_role(self, cloud_service_name: str, deployment_name: str, role_name: str) -> AsyncOperation:
        return self._role_operation(RESTART_ROLE_OPERATION, cloud_service_name, deployment_name, role_name)

    def delete_role(self, cloud_service_name: str, deployment_name: str, role_name: str) -> AsyncOperation:
        require(cloud_service_name=cloud_service_name, deployment_name=deployment_name, role_name=role_name)
        path = self.client.paths.role.format(
            service=cloud_service_name, deployment=deployment_name, role=role_name
        )
        logger.info(f"Deleting role '{role_name}' from '{cloud_service_name}/{deployment_name}'")
        return self.client.tracker.wait(self.client.transport.delete(path))

    # -------------------------------------------------------------------------
    # Role sizes
    # -------------------------------------------------------------------------

    def get_role_size_list(self) -> list[RoleSize]:
        return parse_role_sizes(self.client.transport.get(self.client.paths.role_sizes))

    def resolve_role_size(self, role_size_name: str) -> None:
        """Raise ValidationError unless role_size_name is a known size."""
        require(role_size_name=role_size_name)
        sizes = self.get_role_size_list()
        if any(size.name == role_size_name for size in sizes):
            return
        available = ', '.join(size.name for size in sizes)
        raise ValidationError(INVALID_ROLE_SIZE_ERROR.format(size=role_size_name, available=available))
