# SPDX-License-Identifier: MIT
# Copyright (c) 2024 Collegiate Cyber Defense Club
import json
import os
import subprocess
import sys

from sheettrack.util.client import ClientError, SheetTrackClient


# Define the default command to run uvicorn with environment variables
def run_uvicorn():
    host = os.getenv("SHEETTRACK_HOST", "0.0.0.0")
    port = os.getenv("SHEETTRACK_PORT", "8000")
    forwarded_allow_ips = os.getenv("SHEETTRACK_FORWARDED_ALLOW_IPS")

    command = [
        "uvicorn",
        "sheettrack.main:app",
        "--host",
        host,
        "--port",
        port,
        "--workers",
        "2",
    ]

    if forwarded_allow_ips is not None:
        command.extend(["--forwarded-allow-ips", forwarded_allow_ips])
        command.append("--proxy-headers")

    subprocess.run(command)


def run_dev():
    host = os.getenv("SHEETTRACK_HOST", "0.0.0.0")
    port = os.getenv("SHEETTRACK_PORT", "8000")
    command = ["uvicorn", "sheettrack.main:app", "--host", host, "--port", port, "--reload"]
    subprocess.run(command)


def run_client(args):
    """
    Drives a running server: link <id|url>, rows, complete <device>,
    incomplete <device>, comment <device> <text>.
    """
    client = SheetTrackClient(
        os.getenv("SHEETTRACK_URL", "http://localhost:8000"), os.getenv("API_KEY")
    )
    command, rest = args[0], args[1:]
    commands = {
        "link": (1, lambda: client.link(rest[0])),
        "unlink": (0, client.unlink),
        "rows": (0, client.rows),
        "complete": (1, lambda: client.complete(rest[0])),
        "incomplete": (1, lambda: client.incomplete(rest[0])),
        "comment": (2, lambda: client.comment(rest[0], " ".join(rest[1:]))),
    }
    needed, call = commands[command]
    if len(rest) < needed:
        print(f"usage: {command} requires {needed} argument(s)", file=sys.stderr)
        return 2
    try:
        print(json.dumps(call(), indent=2))
    except ClientError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return 1
    return 0


CLIENT_COMMANDS = {"link", "unlink", "rows", "complete", "incomplete", "comment"}

# Entry point
if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "dev":
        run_dev()
    elif len(sys.argv) > 1 and sys.argv[1] in CLIENT_COMMANDS:
        sys.exit(run_client(sys.argv[1:]))
    else:
        run_uvicorn()
