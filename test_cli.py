#!/usr/bin/env python3
"""
命令行参数合并测试

测试内容:
1. 命令行参数覆盖配置文件，显式的 0 也算设置
2. 环境变量作用于命令行工具的 Config
3. 用户名/密码的组合
"""

import pytest

from socks5_client import PasswordAuthentication
from socks5_connect import build_parser, resolve_settings


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    monkeypatch.delenv('SOCKS5_CONNECT_TIMEOUT', raising=False)
    monkeypatch.delenv('SOCKS5_SKIP_AUTH', raising=False)
    path = tmp_path / 'config.yaml'
    path.write_text(
        "client:\n"
        "  proxy: 10.0.0.1:1080\n"
        "  target: perdu.com\n"
        "  port: 80\n"
        "  connect_timeout: 7\n",
        encoding='utf-8'
    )
    return str(path)


def test_values_from_config_file(config_file):
    settings = resolve_settings(build_parser().parse_args(['-c', config_file]))
    assert settings['proxy'] == '10.0.0.1:1080'
    assert settings['target_host'] == 'perdu.com'
    assert settings['target_port'] == 80
    assert settings['config'].connect_timeout == 7.0
    assert settings['auth'] is None


def test_explicit_zero_port_overrides_config_file(config_file):
    args = build_parser().parse_args(['-c', config_file, '--port', '0'])
    assert resolve_settings(args)['target_port'] == 0


def test_command_line_overrides_config_file(config_file):
    args = build_parser().parse_args([
        '-c', config_file, '--proxy', '127.0.0.1:9050', '--target', 'example.com',
        '--connect-timeout', '2.5', '--skip-auth'
    ])
    settings = resolve_settings(args)
    assert settings['proxy'] == '127.0.0.1:9050'
    assert settings['target_host'] == 'example.com'
    assert settings['config'].connect_timeout == 2.5
    assert settings['config'].skip_auth is True


def test_environment_applies_to_command_line(config_file, monkeypatch):
    monkeypatch.setenv('SOCKS5_CONNECT_TIMEOUT', '1.5')
    monkeypatch.setenv('SOCKS5_SKIP_AUTH', 'true')
    settings = resolve_settings(build_parser().parse_args(['-c', config_file]))
    assert settings['config'].connect_timeout == 1.5
    assert settings['config'].skip_auth is True


def test_invalid_connect_timeout_rejected(config_file):
    args = build_parser().parse_args(['-c', config_file, '--connect-timeout', '0'])
    with pytest.raises(ValueError):
        resolve_settings(args)


def test_username_and_password_offer_password_method(config_file):
    args = build_parser().parse_args(['-c', config_file, '-u', 'alice', '--password', ''])
    assert resolve_settings(args)['auth'] == PasswordAuthentication('alice', '')
