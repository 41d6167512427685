#!/usr/bin/env python
"""
Spreadsheet Sales Import Script

Uploads a sales spreadsheet to the Sales Dashboard API.

Usage:
    python import_sales.py data/sales.xlsx
    python import_sales.py data/sales.csv --url http://localhost:8000
    python import_sales.py data/sales.xlsx --inspect
"""
import argparse
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from sales_api.services.spreadsheet import ALLOWED_EXTENSIONS, is_supported, read_first_sheet

CONTENT_TYPES = {
    ".csv": "text/csv",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".xls": "application/vnd.ms-excel",
}


def inspect_file(file_path: Path) -> Dict[str, Any]:
    """
    Read the first sheet locally and describe its layout.

    Args:
        file_path: Path to the spreadsheet

    Returns:
        Dictionary with the header names, the first data row and row count
    """
    rows = read_first_sheet(file_path.read_bytes(), file_path.name)
    return {
        "headers": list(rows[0].keys()) if rows else [],
        "first_row": rows[0] if rows else None,
        "rows": len(rows),
    }


def upload_file(
    file_path: Path,
    api_url: str,
    timeout: int = 120,
    client: Optional[httpx.Client] = None,
) -> Dict[str, Any]:
    """
    Send a spreadsheet to the upload endpoint.

    Args:
        file_path: Path to the spreadsheet
        api_url: Base API URL
        timeout: Request timeout in seconds
        client: Optional preconfigured client (used by tests)

    Returns:
        API response dictionary

    Raises:
        httpx.HTTPError: If API request fails
    """
    endpoint = f"{api_url.rstrip('/')}/api/upload"
    content_type = CONTENT_TYPES.get(file_path.suffix.lower(), "application/octet-stream")
    files = {"file": (file_path.name, file_path.read_bytes(), content_type)}

    if client is not None:
        response = client.post(endpoint, files=files)
        response.raise_for_status()
        return response.json()

    with httpx.Client(timeout=timeout) as own_client:
        response = own_client.post(endpoint, files=files)
        response.raise_for_status()
        return response.json()


def main(argv: Optional[list] = None) -> int:
    """Main entry point for the script."""
    parser = argparse.ArgumentParser(
        description="Import a sales spreadsheet into the Sales Dashboard API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s data/sales.xlsx
  %(prog)s data/sales.csv --url http://localhost:8000
  %(prog)s data/sales.xlsx --inspect
        """
    )

    parser.add_argument(
        "file",
        type=Path,
        help=f"Spreadsheet to import ({', '.join(ALLOWED_EXTENSIONS)})"
    )

    parser.add_argument(
        "--url",
        type=str,
        default="http://localhost:8000",
        help="Base API URL (default: http://localhost:8000)"
    )

    parser.add_argument(
        "--timeout",
        type=int,
        default=120,
        help="Request timeout in seconds (default: 120)"
    )

    parser.add_argument(
        "--inspect",
        action="store_true",
        help="Only print the headers and first row of the sheet"
    )

    args = parser.parse_args(argv)

    if not args.file.is_file():
        print(f"❌ Error: File not found: {args.file}", file=sys.stderr)
        return 1

    if not is_supported(args.file.name):
        print(f"❌ Error: Unsupported file type: {args.file.suffix}", file=sys.stderr)
        return 1

    if args.inspect:
        try:
            layout = inspect_file(args.file)
        except ValueError as e:
            print(f"❌ Error reading file: {e}", file=sys.stderr)
            return 1
        print(f"Headers: {layout['headers']}")
        print(f"First Row: {layout['first_row']}")
        print(f"Rows: {layout['rows']}")
        return 0

    print(f"📤 Uploading {args.file} to {args.url}")

    try:
        response = upload_file(args.file, args.url, args.timeout)
    except httpx.HTTPStatusError as e:
        print("❌ Failed", file=sys.stderr)
        try:
            print(f"   API Response: {e.response.json()}", file=sys.stderr)
        except ValueError:
            print(f"   API Response: {e.response.text}", file=sys.stderr)
        return 1
    except httpx.HTTPError as e:
        print("❌ Failed", file=sys.stderr)
        print(f"   Error: {e}", file=sys.stderr)
        return 1

    print(f"✅ {response.get('message')}")
    for error in response.get("errors") or []:
        print(f"   ⚠️  Row {error['row']}: {error['error']}", file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
