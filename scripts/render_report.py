"""Render a report PDF without the HTTP server.

Either from a stored report (SQLite backend):
    python scripts/render_report.py --report-id <id> --out report.pdf

or from a narrative text file plus photos:
    python scripts/render_report.py --narrative narrative.txt --job "Kitchen" \
        --client "Smith" --address "1 Main St" photo1.jpg photo2.jpg --out report.pdf
"""

import argparse
from dotenv import load_dotenv
from site_report.log import setup_logging, get_logger
from site_report.parsing.narrative import parse_narrative
from site_report.pipeline.intake import create_report
from site_report.rendering.pdf import assemble_report
from site_report.store.repo import SqliteReportStore

def run():
    load_dotenv()
    setup_logging()
    logger = get_logger("render_report")

    parser = argparse.ArgumentParser(description="Render a site report PDF")
    parser.add_argument("photos", nargs="*", help="Photo files, in report order")
    parser.add_argument("--report-id", help="Render a report from the SQLite store")
    parser.add_argument("--narrative", help="Text file with the narrative")
    parser.add_argument("--job", default="")
    parser.add_argument("--client", default="")
    parser.add_argument("--address", default="")
    parser.add_argument("--out", default="report.pdf")
    args = parser.parse_args()

    if args.report_id:
        report = SqliteReportStore().get(args.report_id)
        if report is None:
            parser.error(f"Report {args.report_id} not found")
    else:
        report = create_report(
            {"job_name": args.job, "client_name": args.client, "address": args.address},
            [{"image_path": p} for p in args.photos],
        )
        if args.narrative:
            with open(args.narrative, "r", encoding="utf-8") as f:
                report = report.revise(narrative_text=f.read())

    document = assemble_report(report, parse_narrative(report.narrative_text), args.out)
    logger.info(f"Wrote {args.out} ({document.page_count} pages)")

if __name__ == "__main__":
    run()
