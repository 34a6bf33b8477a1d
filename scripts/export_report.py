"""Download one report from the reports service to disk."""

import argparse
import re
from pathlib import Path

import httpx


def main() -> None:
    """CLI entrypoint for report exports."""

    parser = argparse.ArgumentParser(description="Fetch a CSV/Excel/PDF report.")
    parser.add_argument("report", choices=["contributions", "disbursements", "balances", "expenses"])
    parser.add_argument("--format", dest="fmt", choices=["csv", "xlsx", "pdf"], default="pdf")
    parser.add_argument("--reports-url", default="http://localhost:8003")
    parser.add_argument("--api-key", required=True)
    parser.add_argument("--staff-email", required=True)
    parser.add_argument("--start-date", default=None)
    parser.add_argument("--end-date", default=None)
    parser.add_argument("--out-dir", default=".")
    args = parser.parse_args()

    params = {k: v for k, v in {"start_date": args.start_date, "end_date": args.end_date}.items() if v}
    resp = httpx.get(
        f"{args.reports_url}/reports/{args.report}.{args.fmt}",
        params=params,
        headers={"x-api-key": args.api_key, "x-staff-email": args.staff_email},
        timeout=30.0,
    )
    resp.raise_for_status()
    match = re.search(r'filename="([^"]+)"', resp.headers.get("content-disposition", ""))
    filename = match.group(1) if match else f"{args.report}.{args.fmt}"
    target = Path(args.out_dir) / filename
    target.write_bytes(resp.content)
    print(f"Wrote {target} ({len(resp.content)} bytes)")


if __name__ == "__main__":
    main()
