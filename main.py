import asyncio
import argparse
import json
import logging
from pathlib import Path
from typing import Optional
from api.client import JobServiceClient
from api.schemas import JobRequest
from core.pagination import PaginationView
from core.session import ComposerSession

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")


def print_jobs(view: PaginationView):
    first, last = view.window_range
    print(f"\nJobs {first}-{last} of {view.total} (page {view.page}/{max(1, view.page_count)})")
    if not view.total:
        print("  No jobs yet")
        return
    for job in view.window:
        line = f"  {job.id:<36}  {job.status.value:<8}  {job.progress:>3}%  {job.created_at:%Y-%m-%d %H:%M:%S}"
        if job.error_message:
            line += f"  ({job.error_message})"
        print(line)


async def watch_jobs(base_url: str = None, page_size: int = None,
                     draft_path: Optional[str] = None, duration: Optional[float] = None):
    draft = None
    if draft_path:
        draft = JobRequest.model_validate(json.loads(Path(draft_path).read_text(encoding="utf-8")))

    async with JobServiceClient(base_url=base_url) as client:
        async with ComposerSession(client, draft=draft, page_size=page_size) as session:
            session.synchronizer.add_listener(lambda _: print_jobs(session.pagination))

            if draft is not None:
                if not session.can_submit:
                    print("Draft cannot be submitted:")
                    for issue in session.model.issues:
                        print(f"  - {issue}")
                else:
                    await session.submit()

            if duration is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(duration)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Video Smith job monitor")
    parser.add_argument("--base-url", default=None, help="Job service API URL (default from settings)")
    parser.add_argument("--page-size", type=int, default=None, help="Jobs shown per page")
    parser.add_argument("--submit", metavar="DRAFT_JSON", default=None, help="Submit a job request file first")
    parser.add_argument("--duration", type=float, default=None, help="Stop watching after N seconds")

    args = parser.parse_args()

    if args.submit and not Path(args.submit).exists():
        print(f"Error: Draft file not found: {args.submit}")
        exit(1)

    try:
        asyncio.run(watch_jobs(args.base_url, args.page_size, args.submit, args.duration))
    except KeyboardInterrupt:
        pass
