"""Management API clients and workflows."""

from azure_vm_driver.management.client import ManagementClient
from azure_vm_driver.management.hosted_service import HostedServiceClient
from azure_vm_driver.management.image import ImageClient
from azure_vm_driver.management.location import LocationClient
from azure_vm_driver.management.storage import StorageServiceClient
from azure_vm_driver.management.tracker import OperationTracker
from azure_vm_driver.management.vm import VmClient
from azure_vm_driver.management.vnet import VnetClient
from azure_vm_driver.management.workflow import StepState, WorkflowState

__all__ = [
    'ManagementClient',
    'HostedServiceClient',
    'ImageClient',
    'LocationClient',
    'StorageServiceClient',
    'OperationTracker',
    'VmClient',
    'VnetClient',
    'StepState',
    'WorkflowState',
]
