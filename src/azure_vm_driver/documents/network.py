"""Subscription-wide virtual network configuration document.

The provider replaces the whole configuration on every update, so child
elements this module does not model are kept as parsed and written back
unchanged.
"""

import copy
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Optional

from azure_vm_driver.documents.base import XSI_XMLNS, new_document, parse, sub, text, texts, to_bytes

NETWORK_CONFIGURATION_XMLNS = 'http://schemas.microsoft.com/ServiceHosting/2011/07/NetworkConfiguration'

DEFAULT_CONNECTION_TYPE = 'IPsec'

_VNET_CONFIG_CHILDREN = {'Dns', 'LocalNetworkSites', 'VirtualNetworkSites'}
_LOCAL_SITE_CHILDREN = {'AddressSpace', 'VPNGatewayAddress'}
_VIRTUAL_SITE_CHILDREN = {'AddressSpace', 'Subnets', 'DnsServersRef', 'Gateway'}


def _unmodeled(el: ET.Element, known: set[str]) -> list[ET.Element]:
    return [child for child in el if child.tag not in known]


def _append_unmodeled(parent: ET.Element, elements: list[ET.Element]) -> None:
    for el in elements:
        parent.append(copy.deepcopy(el))


@dataclass
class DnsServer:
    name: str
    ip_address: str


@dataclass
class LocalNetworkSite:
    name: str
    address_prefixes: list[str] = field(default_factory=list)
    vpn_gateway_address: str = ''
    unmodeled: list[ET.Element] = field(default_factory=list, compare=False, repr=False)


@dataclass
class Subnet:
    name: str
    address_prefix: str


@dataclass
class LocalNetworkConnection:
    """Gateway connection to a local network site."""
    local_network_site: str
    connection_type: str = DEFAULT_CONNECTION_TYPE


@dataclass
class Gateway:
    """VPN gateway of a virtual network site."""
    profile: str = ''
    vpn_client_address_prefixes: list[str] = field(default_factory=list)
    connections: list[LocalNetworkConnection] = field(default_factory=list)


@dataclass
class VirtualNetworkSite:
    name: str
    location: str = ''
    affinity_group: str = ''
    address_prefixes: list[str] = field(default_factory=list)
    subnets: list[Subnet] = field(default_factory=list)
    dns_server_refs: list[str] = field(default_factory=list)
    gateway: Optional[Gateway] = None
    unmodeled: list[ET.Element] = field(default_factory=list, compare=False, repr=False)


def _gateway_element(parent: ET.Element, gateway: Gateway) -> None:
    attrs = {'profile': gateway.profile} if gateway.profile else {}
    el = sub(parent, 'Gateway', **attrs)
    if gateway.vpn_client_address_prefixes:
        pool = sub(el, 'VPNClientAddressPool')
        for prefix in gateway.vpn_client_address_prefixes:
            sub(pool, 'AddressPrefix', prefix)
    connections = sub(el, 'ConnectionsToLocalNetwork')
    for conn in gateway.connections:
        ref = sub(connections, 'LocalNetworkSiteRef', name=conn.local_network_site)
        sub(ref, 'Connection', type=conn.connection_type)


def _parse_connection(ref: ET.Element) -> LocalNetworkConnection:
    conn = ref.find('Connection')
    connection_type = DEFAULT_CONNECTION_TYPE if conn is None else conn.get('type', DEFAULT_CONNECTION_TYPE)
    return LocalNetworkConnection(local_network_site=ref.get('name', ''), connection_type=connection_type)


def _parse_gateway(el: ET.Element) -> Gateway:
    return Gateway(
        profile=el.get('profile', ''),
        vpn_client_address_prefixes=texts(el, 'VPNClientAddressPool/AddressPrefix'),
        connections=[_parse_connection(ref) for ref in el.findall('ConnectionsToLocalNetwork/LocalNetworkSiteRef')],
    )


@dataclass
class NetworkConfiguration:
    """Editable view of the subscription network configuration.

    Fetch it, modify the lists, then send it back whole: the remote side
    replaces the entire configuration on every update.
    """
    dns_servers: list[DnsServer] = field(default_factory=list)
    local_network_sites: list[LocalNetworkSite] = field(default_factory=list)
    virtual_network_sites: list[VirtualNetworkSite] = field(default_factory=list)
    unmodeled: list[ET.Element] = field(default_factory=list, compare=False, repr=False)

    def get_site(self, name: str) -> VirtualNetworkSite:
        """Virtual network site by name.

        Raises:
            KeyError: If no site has that name
        """
        for site in self.virtual_network_sites:
            if site.name == name:
                return site
        raise KeyError(name)

    def to_bytes(self) -> bytes:
        root = new_document('NetworkConfiguration', xmlns=NETWORK_CONFIGURATION_XMLNS)
        root.set('xmlns:xsi', XSI_XMLNS)
        vnet_config = sub(root, 'VirtualNetworkConfiguration')

        if self.dns_servers:
            servers = sub(sub(vnet_config, 'Dns'), 'DnsServers')
            for dns in self.dns_servers:
                sub(servers, 'DnsServer', name=dns.name, IPAddress=dns.ip_address)

        if self.local_network_sites:
            sites = sub(vnet_config, 'LocalNetworkSites')
            for lns in self.local_network_sites:
                site = sub(sites, 'LocalNetworkSite', name=lns.name)
                space = sub(site, 'AddressSpace')
                for prefix in lns.address_prefixes:
                    sub(space, 'AddressPrefix', prefix)
                if lns.vpn_gateway_address:
                    sub(site, 'VPNGatewayAddress', lns.vpn_gateway_address)
                _append_unmodeled(site, lns.unmodeled)

        if self.virtual_network_sites:
            sites = sub(vnet_config, 'VirtualNetworkSites')
            for vns in self.virtual_network_sites:
                attrs = {'name': vns.name}
                if vns.location:
                    attrs['Location'] = vns.location
                if vns.affinity_group:
                    attrs['AffinityGroup'] = vns.affinity_group
                site = sub(sites, 'VirtualNetworkSite', **attrs)
                space = sub(site, 'AddressSpace')
                for prefix in vns.address_prefixes:
                    sub(space, 'AddressPrefix', prefix)
                if vns.subnets:
                    subnets = sub(site, 'Subnets')
                    for subnet in vns.subnets:
                        sub(sub(subnets, 'Subnet', name=subnet.name), 'AddressPrefix', subnet.address_prefix)
                if vns.dns_server_refs:
                    refs = sub(site, 'DnsServersRef')
                    for ref in vns.dns_server_refs:
                        sub(refs, 'DnsServerRef', name=ref)
                if vns.gateway is not None:
                    _gateway_element(site, vns.gateway)
                _append_unmodeled(site, vns.unmodeled)

        _append_unmodeled(vnet_config, self.unmodeled)
        return to_bytes(root)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'NetworkConfiguration':
        root = parse(data)
        vnet_config = root.find('VirtualNetworkConfiguration')
        config = cls()
        if vnet_config is None:
            return config

        config.unmodeled = _unmodeled(vnet_config, _VNET_CONFIG_CHILDREN)

        for dns in vnet_config.findall('Dns/DnsServers/DnsServer'):
            config.dns_servers.append(DnsServer(name=dns.get('name', ''), ip_address=dns.get('IPAddress', '')))

        for site in vnet_config.findall('LocalNetworkSites/LocalNetworkSite'):
            config.local_network_sites.append(LocalNetworkSite(
                name=site.get('name', ''),
                address_prefixes=texts(site, 'AddressSpace/AddressPrefix'),
                vpn_gateway_address=text(site, 'VPNGatewayAddress'),
                unmodeled=_unmodeled(site, _LOCAL_SITE_CHILDREN),
            ))

        for site in vnet_config.findall('VirtualNetworkSites/VirtualNetworkSite'):
            gateway_el = site.find('Gateway')
            config.virtual_network_sites.append(VirtualNetworkSite(
                name=site.get('name', ''),
                location=site.get('Location', ''),
                affinity_group=site.get('AffinityGroup', ''),
                address_prefixes=texts(site, 'AddressSpace/AddressPrefix'),
                subnets=[
                    Subnet(name=s.get('name', ''), address_prefix=text(s, 'AddressPrefix'))
                    for s in site.findall('Subnets/Subnet')
                ],
                dns_server_refs=[r.get('name', '') for r in site.findall('DnsServersRef/DnsServerRef')],
                gateway=_parse_gateway(gateway_el) if gateway_el is not None else None,
                unmodeled=_unmodeled(site, _VIRTUAL_SITE_CHILDREN),
            ))
        return config
