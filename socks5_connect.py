#!/usr/bin/env python3
"""
SOCKS5 客户端 - 命令行工具

通过 SOCKS5 代理对目标发出 CONNECT / BIND / UDP ASSOCIATE 请求，
打印代理报告的绑定地址。

使用方法:
    python3 socks5_connect.py --proxy 127.0.0.1:1080 --target perdu.com --port 80 --skip-auth
    python3 socks5_connect.py -c config.yaml --command udp
"""

import argparse
import asyncio
import logging
import sys

from socks5_client import (
    Config, PasswordAuthentication, Socks5Command, Socks5Stream, SocksError,
    TargetAddr, load_client_config, load_config, tcp_connect
)
from socks5_client.logger import LoggerManager, add_context

logger = logging.getLogger('socks5-connect')

COMMANDS = {
    'connect': Socks5Command.CONNECT,
    'bind': Socks5Command.BIND,
    'udp': Socks5Command.UDP_ASSOCIATE,
}


async def run_request(proxy: str, target, command: Socks5Command, config: Config,
                      auth=None) -> int:
    """
    执行一次 SOCKS5 请求

    Args:
        proxy: 代理地址
        target: 目标地址（UDP ASSOCIATE 时可以为 None）
        command: 请求命令
        config: 客户端配置
        auth: 额外的认证方法（可选）

    Returns:
        int: 退出码
    """
    if command == Socks5Command.CONNECT and auth is None:
        stream = await Socks5Stream.connect(proxy, target.to_socket_address()[0], target.port, config)
    else:
        reader, writer = await tcp_connect(proxy, timeout=config.connect_timeout)
        stream = await Socks5Stream.use_channel(reader, writer, auth, config)
        try:
            await stream.request(command, target)
        except SocksError:
            stream.close()
            raise

    async with stream:
        print(f"绑定地址: {stream.bound_addr}")
        if command == Socks5Command.BIND:
            logger.info("等待目标连入...")
            peer = await stream.accept_bind()
            print(f"连入地址: {peer}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='SOCKS5 客户端')
    parser.add_argument('--config', '-c', default='config.yaml', help='配置文件路径')
    parser.add_argument('--proxy', default=None, help='代理地址，如 127.0.0.1:1080')
    parser.add_argument('--target', '-t', default=None, help='目标主机（不是代理）')
    parser.add_argument('--port', '-p', type=int, default=None, help='目标端口')
    parser.add_argument('--command', choices=sorted(COMMANDS), default='connect', help='请求命令')
    parser.add_argument('--skip-auth', action='store_true', help='跳过认证方法协商，直接发送请求')
    parser.add_argument('--connect-timeout', type=float, default=None, help='连接代理超时（秒）')
    parser.add_argument('--username', '-u', default=None, help='用户名（可不配置）')
    parser.add_argument('--password', default=None, help='密码（可不配置）')
    parser.add_argument('--debug', '-d', action='store_true', help='启用调试模式')
    return parser


def _pick(cli_value, file_value):
    return cli_value if cli_value is not None else file_value


def resolve_settings(args: argparse.Namespace) -> dict:
    """
    合并命令行参数、配置文件（client 段）和环境变量

    Config 来自 load_client_config（环境变量优先于配置文件），
    命令行参数再覆盖两者。

    Args:
        args: build_parser() 解析得到的参数

    Returns:
        dict: config / proxy / target_host / target_port / auth
    """
    client_conf = load_config(args.config).get('client') or {}

    config = load_client_config(args.config)
    if args.skip_auth:
        config.set_skip_auth(True)
    if args.connect_timeout is not None:
        config.set_connect_timeout(args.connect_timeout)

    username = _pick(args.username, client_conf.get('username'))
    password = _pick(args.password, client_conf.get('password'))
    auth = None
    if username is not None and password is not None:
        auth = PasswordAuthentication(username, password)

    return {
        'config': config,
        'proxy': _pick(args.proxy, client_conf.get('proxy', '127.0.0.1:1080')),
        'target_host': _pick(args.target, client_conf.get('target')),
        'target_port': _pick(args.port, client_conf.get('port')),
        'auth': auth,
    }


def main(argv=None):
    """
    主函数 - 解析命令行参数并发出请求

    命令行参数优先于环境变量和配置文件（client 段）。
    """
    args = build_parser().parse_args(argv)

    manager = LoggerManager()
    manager.initialize(config_file=args.config)
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
        for handler in logging.getLogger().handlers:
            handler.setLevel(logging.DEBUG)

    try:
        settings = resolve_settings(args)
    except ValueError as e:
        logger.error(f"配置无效: {e}")
        return 1

    config = settings['config']
    proxy = settings['proxy']
    target_host = settings['target_host']
    target_port = settings['target_port']
    auth = settings['auth']
    command = COMMANDS[args.command]

    try:
        if target_host is None and command == Socks5Command.UDP_ASSOCIATE:
            target = None
        elif target_host is None or target_port is None:
            logger.error("未配置目标主机或端口!")
            return 1
        else:
            target = TargetAddr.from_host_port(target_host, target_port)
    except SocksError as e:
        logger.error(f"目标地址无效: {e}")
        return 1

    add_context(proxy=proxy, target=target or '-')
    logger.info(f"代理={proxy}, 目标={target}, 命令={args.command}, skip_auth={config.skip_auth}")

    try:
        return asyncio.run(run_request(proxy, target, command, config, auth))
    except SocksError as e:
        logger.error(f"请求失败: {e}")
        return 2
    except KeyboardInterrupt:
        logger.info("收到键盘中断信号")
        return 0


if __name__ == '__main__':
    sys.exit(main())
