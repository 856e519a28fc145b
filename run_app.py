# run_app.py
import os
import sys

import streamlit.web.cli as stcli


def resolve_path(path):
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), path)


def main():
    os.environ.setdefault("STREAMLIT_SERVER_HEADLESS", "true")
    sys.argv = [
        "streamlit",
        "run",
        resolve_path("app.py"),
        "--global.developmentMode=false",
    ]
    sys.exit(stcli.main())


if __name__ == "__main__":
    main()
