"""
测试辅助 - 内存中的双工通道

reader 使用真实的 asyncio.StreamReader 并预先填入代理的应答字节，
writer 记录客户端写出的每一个字节。
"""

import asyncio

from socks5_client import HandshakeObserver


class RecordingWriter:
    """记录写入内容的 StreamWriter 替身"""

    def __init__(self):
        self.data = bytearray()
        self.writes = []
        self.drain_count = 0
        self.closed = False

    def write(self, data: bytes):
        self.writes.append(bytes(data))
        self.data += data

    async def drain(self):
        self.drain_count += 1

    def close(self):
        self.closed = True

    def is_closing(self) -> bool:
        return self.closed

    async def wait_closed(self):
        pass


class BrokenWriter(RecordingWriter):
    """drain() 时抛出连接重置"""

    async def drain(self):
        raise ConnectionResetError(104, "Connection reset by peer")


def make_reader(data: bytes = b'', eof: bool = True) -> asyncio.StreamReader:
    """构造预先填入数据的 StreamReader，必须在事件循环内调用"""
    reader = asyncio.StreamReader()
    if data:
        reader.feed_data(data)
    if eof:
        reader.feed_eof()
    return reader


class RecordingObserver(HandshakeObserver):
    """按顺序记录握手检查点"""

    def __init__(self):
        self.events = []

    def on_dial_complete(self, proxy):
        self.events.append(('dial', proxy))

    def on_negotiated(self, method):
        self.events.append(('negotiated', method))

    def on_request_sent(self, command, target, header):
        self.events.append(('request', command, target, header))

    def on_reply_parsed(self, bound):
        self.events.append(('reply', bound))


# 成功应答，绑定地址 0.0.0.0:0
REPLY_OK_IPV4 = bytes([0x05, 0x00, 0x00, 0x01, 0, 0, 0, 0, 0, 0])
