import argparse
import json
import os
import sys
from pathlib import Path

import requests

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from pdfquiz.config import load_env


def main() -> int:
    load_env()

    parser = argparse.ArgumentParser(description="Upload a PDF to the question service.")
    parser.add_argument("path", help="Local PDF file")
    parser.add_argument("--source-id", default=None, help="Document id to store questions under; defaults to the file name")
    parser.add_argument("--url", default=os.getenv("PDFQUIZ_BASE_URL", "http://localhost:8000"))
    args = parser.parse_args()

    pdf_path = Path(args.path)
    source_id = args.source_id or pdf_path.name
    url = f"{args.url.rstrip('/')}/documents/{source_id}"

    response = requests.post(
        url,
        data=pdf_path.read_bytes(),
        headers={"Content-Type": "application/pdf"},
        timeout=600,
    )
    print(f"POST {url} -> {response.status_code}")

    try:
        data = response.json()
    except ValueError:
        print(response.text)
        return 1
    print(json.dumps(data, indent=2))
    if data.get("notice"):
        print(data["notice"])
    return 0 if response.ok else 1


if __name__ == "__main__":
    sys.exit(main())
