#!/usr/bin/env python3
"""
错误分类测试

测试内容:
1. REP 应答码与 ReplyError 一一对应
2. 未知应答码不会被强制转换为已有成员
3. 拨号错误到 ReplyError 的映射
"""

import asyncio
import errno

import pytest

from socks5_client import (
    ProtocolError, ReplyError, SocksError, SocksReplyError, TransportError,
    UnknownReplyCode, map_connect_error
)

REPLY_TABLE = [
    (0x00, ReplyError.SUCCEEDED),
    (0x01, ReplyError.GENERAL_FAILURE),
    (0x02, ReplyError.CONNECTION_NOT_ALLOWED),
    (0x03, ReplyError.NETWORK_UNREACHABLE),
    (0x04, ReplyError.HOST_UNREACHABLE),
    (0x05, ReplyError.CONNECTION_REFUSED),
    (0x06, ReplyError.TTL_EXPIRED),
    (0x07, ReplyError.COMMAND_NOT_SUPPORTED),
    (0x08, ReplyError.ADDRESS_TYPE_NOT_SUPPORTED),
]


@pytest.mark.parametrize('code, reply', REPLY_TABLE)
def test_reply_code_table(code, reply):
    assert ReplyError.from_code(code) is reply
    assert reply.code == code


@pytest.mark.parametrize('code', [0x09, 0x10, 0x7F, 0xFF])
def test_unknown_reply_code(code):
    with pytest.raises(UnknownReplyCode) as excinfo:
        ReplyError.from_code(code)
    assert excinfo.value.code == code
    assert isinstance(excinfo.value, ProtocolError)


def test_connection_timeout_has_no_wire_code():
    assert ReplyError.CONNECTION_TIMEOUT.code is None
    assert len({reply.code for _, reply in REPLY_TABLE}) == 9


def test_reply_error_messages():
    err = SocksReplyError(ReplyError.CONNECTION_REFUSED)
    assert err.reply is ReplyError.CONNECTION_REFUSED
    assert str(err) == "Error with reply: Connection refused."
    assert isinstance(err, SocksError)


@pytest.mark.parametrize('exc, reply', [
    (ConnectionRefusedError(errno.ECONNREFUSED, 'refused'), ReplyError.CONNECTION_REFUSED),
    (ConnectionAbortedError(errno.ECONNABORTED, 'aborted'), ReplyError.CONNECTION_NOT_ALLOWED),
    (ConnectionResetError(errno.ECONNRESET, 'reset'), ReplyError.CONNECTION_NOT_ALLOWED),
    (OSError(errno.ENOTCONN, 'not connected'), ReplyError.NETWORK_UNREACHABLE),
])
def test_connect_error_mapping(exc, reply):
    mapped = map_connect_error(exc)
    assert isinstance(mapped, SocksReplyError)
    assert mapped.reply is reply


def test_other_connect_errors_pass_through():
    original = OSError(errno.EHOSTUNREACH, 'No route to host')
    mapped = map_connect_error(original)
    assert isinstance(mapped, TransportError)
    assert mapped.original is original


def test_transport_error_keeps_incomplete_read():
    original = asyncio.IncompleteReadError(b'\x05', 2)
    err = TransportError("读取失败", original)
    assert err.original is original
    assert "读取失败" in str(err)
