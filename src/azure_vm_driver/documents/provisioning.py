"""Provisioning credentials, endpoints and extensions for VM roles.

Linux provisioning needs either a password or an SSH certificate:
- password: 4-30 chars with upper case, lower case and numeric characters
- no password: SSH key auth only, password auth disabled, and a placeholder
  password is still sent because the remote schema requires the field
"""

import base64
import hashlib
import json
import logging
import re
import unicodedata
from pathlib import Path

from azure_vm_driver.documents.base import new_document, sub
from azure_vm_driver.documents.role import (
    LINUX_PROVISIONING,
    NETWORK_CONFIGURATION,
    ConfigurationSet,
    InputEndpoint,
    PublicKey,
    ResourceExtensionParameter,
    ResourceExtensionReference,
)
from azure_vm_driver.errors import ValidationError

logger = logging.getLogger(__name__)

OS_LINUX = 'Linux'
OS_WINDOWS = 'Windows'

PLACEHOLDER_PASSWORD = 'P@ssword1'
CERT_EXTENSION = 'pem'
CERTIFICATE_FORMAT = 'pfx'

DOCKER_EXTENSION_NAME = 'DockerExtension'
DOCKER_EXTENSION_PUBLISHER = 'MSOpenTech.Extensions'
DOCKER_EXTENSION_VERSION = '0.3'
DOCKER_PUBLIC_CONFIG_VERSION = 2

INVALID_DNS_LENGTH_ERROR = "The DNS name must be between 3 and 25 characters."
INVALID_PASSWORD_LENGTH_ERROR = "Password must be between 4 and 30 characters."
INVALID_PASSWORD_ERROR = "Password must have at least one upper case, lower case and numeric character."
INVALID_CERT_EXTENSION_ERROR = "Certificate {path} is invalid. Please specify {ext} certificate."
INVALID_OS_ERROR = "You must specify correct OS param. Valid values are 'Linux' and 'Windows'"

_PEM_BLOCK = re.compile(
    rb'-----BEGIN ([A-Z0-9 ]+)-----\s*(.*?)\s*-----END \1-----',
    re.DOTALL,
)


def verify_dns_name(dns_name: str) -> None:
    if len(dns_name) < 3 or len(dns_name) > 25:
        raise ValidationError(INVALID_DNS_LENGTH_ERROR)


def _has_upper(ch: str) -> bool:
    return ch.isupper() or unicodedata.category(ch) == 'Lt'


def _has_numeric(ch: str) -> bool:
    return unicodedata.category(ch).startswith('N')


def verify_password(password: str) -> None:
    """Check length and character classes.

    Raises:
        ValidationError: With the length or character-class message
    """
    if len(password) < 4 or len(password) > 30:
        raise ValidationError(INVALID_PASSWORD_LENGTH_ERROR)

    for check in (_has_upper, str.islower, _has_numeric):
        if not any(check(ch) for ch in password):
            raise ValidationError(INVALID_PASSWORD_ERROR)


def check_cert_extension(cert_path: str) -> None:
    ext = str(cert_path).rsplit('.', 1)[-1]
    if ext != CERT_EXTENSION:
        raise ValidationError(INVALID_CERT_EXTENSION_ERROR.format(path=cert_path, ext=CERT_EXTENSION))


def _read_file(path: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise ValidationError(f"Cannot read certificate {path}: {e}") from e


def pem_to_der(pem_data: bytes) -> bytes:
    """Decode the first PEM block to its DER payload."""
    match = _PEM_BLOCK.search(pem_data)
    if match is None:
        raise ValidationError("No PEM block found in certificate data")
    try:
        return base64.b64decode(b''.join(match.group(2).split()), validate=True)
    except ValueError as e:
        raise ValidationError(f"Invalid PEM payload: {e}") from e


def cert_fingerprint(pem_data: bytes) -> str:
    """SHA-1 of the DER payload as uppercase hex, no separators."""
    return hashlib.sha1(pem_to_der(pem_data)).hexdigest().upper()


def get_service_cert_fingerprint(cert_path: str) -> str:
    return cert_fingerprint(_read_file(cert_path))


def create_ssh_public_key(cert_path: str, user_name: str) -> PublicKey:
    check_cert_extension(cert_path)
    return PublicKey(
        fingerprint=get_service_cert_fingerprint(cert_path),
        path=f'/home/{user_name}/.ssh/authorized_keys',
    )


def create_linux_provisioning_config(
    host_name: str,
    user_name: str,
    password: str = '',
    cert_path: str = '',
) -> ConfigurationSet:
    """Build the LinuxProvisioningConfiguration set."""
    if password:
        verify_password(password)
        disable_password_auth = False
    else:
        logger.debug(f"No password for '{user_name}', disabling SSH password authentication")
        disable_password_auth = True
        password = PLACEHOLDER_PASSWORD

    public_keys: tuple[PublicKey, ...] = ()
    if cert_path:
        public_keys = (create_ssh_public_key(cert_path, user_name),)

    return ConfigurationSet(
        configuration_set_type=LINUX_PROVISIONING,
        host_name=host_name,
        user_name=user_name,
        user_password=password,
        disable_ssh_password_authentication=disable_password_auth,
        public_keys=public_keys,
    )


def create_endpoint(name: str, protocol: str, external_port: int, internal_port: int) -> InputEndpoint:
    return InputEndpoint(name=name, protocol=protocol, port=external_port, local_port=internal_port)


def create_network_config(os_type: str, port: int) -> ConfigurationSet:
    """NetworkConfiguration set with the remote-access endpoint for os_type."""
    if os_type == OS_LINUX:
        endpoint = create_endpoint('ssh', 'tcp', port, 22)
    elif os_type == OS_WINDOWS:
        endpoint = create_endpoint('rdp', 'tcp', port, 3389)
    else:
        raise ValidationError(INVALID_OS_ERROR)

    return ConfigurationSet(
        configuration_set_type=NETWORK_CONFIGURATION,
        input_endpoints=(endpoint,),
    )


def create_extension(
    name: str,
    publisher: str,
    version: str,
    reference_name: str,
    state: str = '',
    public_config: str = '',
    private_config: str = '',
) -> ResourceExtensionReference:
    """Extension reference with base64-encoded private then public config."""
    params = []
    if private_config:
        params.append(ResourceExtensionParameter(
            key='ignored',
            value=base64.b64encode(private_config.encode()).decode(),
            type='Private',
        ))
    if public_config:
        params.append(ResourceExtensionParameter(
            key='ignored',
            value=base64.b64encode(public_config.encode()).decode(),
            type='Public',
        ))
    return ResourceExtensionReference(
        reference_name=reference_name,
        publisher=publisher,
        name=name,
        version=version,
        state=state,
        parameters=tuple(params),
    )


def docker_public_config(docker_port: int) -> str:
    return json.dumps({'dockerport': docker_port, 'version': DOCKER_PUBLIC_CONFIG_VERSION})


def certificate_document(cert_path: str, certificate_format: str = CERTIFICATE_FORMAT):
    """CertificateFile body for uploading cert_path to a hosted service."""
    data = base64.b64encode(_read_file(cert_path)).decode()
    root = new_document('CertificateFile')
    sub(root, 'Data', data)
    sub(root, 'CertificateFormat', certificate_format)
    sub(root, 'Password', '')
    return root
