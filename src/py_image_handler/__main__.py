"""Entry point for python -m py_image_handler.

默认启动 HTTP 服务，参数 mcp 启动 MCP 服务器。
"""

import sys


def main() -> None:
    """主入口函数"""
    # 检查版本信息
    if len(sys.argv) > 1 and sys.argv[1] in ["--version", "-v"]:
        from . import __version__

        print(f"py-image-handler {__version__}")
        return

    if len(sys.argv) > 1 and sys.argv[1] == "mcp":
        from .mcp_server import main as mcp_main

        mcp_main()
        return

    from .server import main as server_main

    server_main()


if __name__ == "__main__":
    main()
