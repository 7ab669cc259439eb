#!/usr/bin/env python3
"""
目标地址测试

测试内容:
1. 主机/端口到 TargetAddr 的转换
2. 地址字段编码（IPv4、域名、IPv6 拒绝）
3. 应答中绑定地址的解码
"""

import asyncio
import ipaddress
import struct

import pytest

from fake_channel import make_reader
from socks5_client import (
    AddressType, AddressTypeNotSupported, DomainAddr, ExceededMaxDomainLen,
    InvalidTargetAddress, IpAddr, ProtocolError, TargetAddr, read_target_addr
)
from socks5_client.consts import MAX_REQUEST_SIZE


def encode(target: TargetAddr) -> bytes:
    buf = bytearray(MAX_REQUEST_SIZE)
    end = target.encode_into(buf, 0)
    return bytes(buf[:end])


def decode(data: bytes, atyp: int) -> TargetAddr:
    async def run():
        return await read_target_addr(make_reader(data), atyp)
    return asyncio.run(run())


# ============================================================================
# 转换
# ============================================================================

def test_numeric_ipv4_host_is_ip_variant():
    target = TargetAddr.from_host_port('93.184.216.34', 443)
    assert target == IpAddr(ipaddress.IPv4Address('93.184.216.34'), 443)
    assert target.atyp == AddressType.IPV4


def test_numeric_ipv6_host_is_ip_variant():
    target = TargetAddr.from_host_port('::1', 8080)
    assert isinstance(target, IpAddr)
    assert target.atyp == AddressType.IPV6
    assert str(target) == '[::1]:8080'

    bracketed = TargetAddr.from_host_port('[::1]', 8080)
    assert bracketed == target


def test_hostname_is_domain_variant():
    target = TargetAddr.from_host_port('perdu.com', 80)
    assert target == DomainAddr('perdu.com', 80)
    assert str(target) == 'perdu.com:80'


def test_ipaddress_objects_and_socket_tuples():
    ip = ipaddress.ip_address('10.0.0.1')
    assert TargetAddr.from_host_port(ip, 22) == IpAddr(ip, 22)
    assert TargetAddr.from_socket_address(('10.0.0.1', 22)) == IpAddr(ip, 22)
    assert TargetAddr.from_host_port('example.org', '8443').port == 8443


def test_parse_host_port_strings():
    assert TargetAddr.parse('127.0.0.1:1080') == IpAddr(ipaddress.IPv4Address('127.0.0.1'), 1080)
    assert TargetAddr.parse('[2001:db8::1]:443').atyp == AddressType.IPV6
    assert TargetAddr.parse('perdu.com:80') == DomainAddr('perdu.com', 80)


@pytest.mark.parametrize('host, port', [
    ('', 80),
    ('perdu.com', -1),
    ('perdu.com', 65536),
    ('perdu.com', 'http'),
    ('perdu.com', True),
    ('perdu.com', 80.9),
    ('perdu.com', '80.9'),
    (None, 80),
])
def test_invalid_host_port_rejected(host, port):
    with pytest.raises(InvalidTargetAddress):
        TargetAddr.from_host_port(host, port)


def test_target_addr_is_abstract():
    with pytest.raises(TypeError):
        TargetAddr()


def test_parse_without_port_rejected():
    with pytest.raises(InvalidTargetAddress):
        TargetAddr.parse('perdu.com')


def test_target_addr_is_immutable():
    target = DomainAddr('perdu.com', 80)
    with pytest.raises(AttributeError):
        target.port = 81


# ============================================================================
# 编码
# ============================================================================

def test_encode_ipv4():
    target = TargetAddr.from_host_port('93.184.216.34', 443)
    assert encode(target) == bytes([0x01, 0x5D, 0xB8, 0xD8, 0x22, 0x01, 0xBB])


def test_encode_domain():
    assert encode(DomainAddr('perdu.com', 80)) == b'\x03\x09perdu.com\x00\x50'


def test_encode_max_length_domain():
    name = 'a' * 255
    data = encode(DomainAddr(name, 1))
    assert data[1] == 255
    assert len(data) == 1 + 1 + 255 + 2


def test_encode_domain_too_long():
    with pytest.raises(ExceededMaxDomainLen) as excinfo:
        encode(DomainAddr('a' * 256, 80))
    assert excinfo.value.length == 256


def test_domain_length_counts_utf8_bytes():
    # 86 个三字节字符 = 258 字节
    with pytest.raises(ExceededMaxDomainLen) as excinfo:
        encode(DomainAddr('域' * 86, 80))
    assert excinfo.value.length == 258


def test_encode_ipv6_rejected():
    with pytest.raises(AddressTypeNotSupported) as excinfo:
        encode(TargetAddr.from_host_port('::1', 80))
    assert excinfo.value.atyp == AddressType.IPV6


def test_encode_bound_checks_buffer():
    with pytest.raises(ProtocolError):
        DomainAddr('perdu.com', 80).encode_into(bytearray(8), 0)


# ============================================================================
# 解码
# ============================================================================

def test_decode_ipv4():
    bound = decode(bytes([127, 0, 0, 1]) + struct.pack('>H', 1080), AddressType.IPV4)
    assert bound == IpAddr(ipaddress.IPv4Address('127.0.0.1'), 1080)


@pytest.mark.parametrize('name', ['perdu.com', 'x', 'a' * 255])
def test_domain_encode_then_decode(name):
    encoded = encode(DomainAddr(name, 8080))
    assert decode(encoded[1:], encoded[0]) == DomainAddr(name, 8080)


def test_decode_ipv6_rejected():
    with pytest.raises(AddressTypeNotSupported):
        decode(bytes(18), AddressType.IPV6)


def test_decode_unknown_atyp_rejected():
    with pytest.raises(AddressTypeNotSupported) as excinfo:
        decode(bytes(6), 0x02)
    assert excinfo.value.atyp == 0x02


def test_decode_short_read():
    with pytest.raises(asyncio.IncompleteReadError):
        decode(bytes([127, 0, 0]), AddressType.IPV4)
