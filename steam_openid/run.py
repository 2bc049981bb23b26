import os

from steam_openid.main import create_app


def main() -> None:
    host = "127.0.0.1"
    port = int(os.environ.get("PORT", "5000"))
    app = create_app()
    app.run(host=host, port=port)


if __name__ == "__main__":
    main()
