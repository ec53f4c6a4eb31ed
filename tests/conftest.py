"""Pytest configuration and fixtures."""

import os

# 테스트 중에는 server.log 파일을 만들지 않음
os.environ.setdefault("CHATCORE_LOG_FILE", "")

import pytest

from chatcore.core.processor import CommandProcessor
from chatcore.server import ChatServer


class FakeHandler:
    """ClientHandler 대신 전송된 라인을 모아두는 객체"""

    def __init__(self):
        self.user_id = None
        self.lines = []

    def send_message(self, msg):
        self.lines.append(msg)


@pytest.fixture
def processor():
    return CommandProcessor()


@pytest.fixture
def chat_server():
    return ChatServer()


@pytest.fixture
def make_client(chat_server):
    """서버에 가짜 클라이언트를 접속시키는 팩토리"""

    def _make():
        handler = FakeHandler()
        handler.user_id = chat_server.connect(handler)
        return handler

    return _make
