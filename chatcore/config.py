"""Runtime settings for the chat server."""

import os

HOST = os.getenv("CHATCORE_HOST", "0.0.0.0")
PORT = int(os.getenv("CHATCORE_PORT", "6667"))

# 로그 설정 (빈 문자열이면 파일 로그 비활성화)
LOG_LEVEL = os.getenv("CHATCORE_LOG_LEVEL", "DEBUG").upper()
LOG_FILE = os.getenv("CHATCORE_LOG_FILE", os.path.join(os.getcwd(), "server.log"))

SERVER_PREFIX = "server"
RECV_SIZE = 4096
