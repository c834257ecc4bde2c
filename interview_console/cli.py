# interview_console/cli.py
from __future__ import annotations
import argparse
import mimetypes
import sys
from pathlib import Path
from typing import Any, Dict, List

from interview_console.api_client import BackendClient
from interview_console.config import get_settings
from interview_console.contracts.models import Interview
from interview_console.errors import ConsoleError
from interview_console.logging_utils import setup_logging
from interview_console.repositories.guides import GuideRepository
from interview_console.repositories.interviews import InterviewRepository, interview_id
from interview_console.services import export, uploads
from interview_console.services.listing import (
    InterviewFilters, describe_filters, filter_interviews, sort_interviews,
)
from interview_console.services.polling import poll_for_transcripts
from interview_console.services.text_filters import is_valid_question_text, parse_guide_content
from interview_console.services.versions import LATEST, list_versions


def build_context(args: argparse.Namespace) -> Dict[str, Any]:
    settings = get_settings()
    if getattr(args, "base_url", None):
        settings.api_base_url = args.base_url
    settings.api_base_url = settings.require_base_url()
    client = BackendClient.from_settings(settings)
    guides = GuideRepository(client)
    interviews = InterviewRepository(
        client, guides,
        max_workers=settings.max_concurrent_requests,
        human_edit_model=settings.human_edit_model,
    )
    return {"settings": settings, "client": client, "guides": guides, "interviews": interviews}


def check_guide_text(text: str) -> Dict[str, Any]:
    questions, prompts = parse_guide_content(text)
    valid = [q for q in questions if is_valid_question_text(q)]
    rejected = [q for q in questions if not is_valid_question_text(q)]
    return {"questions": valid, "prompts": prompts, "rejected": rejected}


def cmd_check_guide(args: argparse.Namespace) -> int:
    bad = 0
    for fp in [Path(p) for p in args.files]:
        print(f"Checking {fp}...")
        report = check_guide_text(fp.read_text(encoding="utf-8-sig"))
        print(f"  Questions: {len(report['questions'])}  Prompts: {len(report['prompts'])}  "
              f"Rejected lines: {len(report['rejected'])}")
        for line in report["rejected"][:5]:
            print(f"   - rejected: {line!r}")
        if args.verbose:
            for n, q in enumerate(report["questions"], start=1):
                print(f"   {n}. {q}")
        if not report["questions"]:
            bad += 1
    return 0 if bad == 0 else 2


def cmd_upload_guide(args: argparse.Namespace) -> int:
    ctx = build_context(args)
    fp = Path(args.file)
    questionnaire_id = ctx["guides"].upload(fp.name, fp.read_bytes(), guide_name=args.name, tags=args.tag)
    print(f"Uploaded guide {fp.name} as {questionnaire_id}")
    return 0


def cmd_upload_audio(args: argparse.Namespace) -> int:
    ctx = build_context(args)
    settings = ctx["settings"]
    fp = Path(args.file)
    meta = uploads.build_audio_meta(args.interviewer, args.farmer, args.village, args.date, args.tag)
    content_type = mimetypes.guess_type(fp.name)[0]
    audio_id = uploads.upload_audio(ctx["client"], fp.name, fp.read_bytes(), content_type, meta)
    print(f"Uploaded {fp.name} as {audio_id}")
    if args.no_wait:
        return 0

    print("Waiting for transcript and translation...")
    result = poll_for_transcripts(
        ctx["client"], audio_id, on_progress=print,
        max_attempts=settings.poll_max_attempts, interval=settings.poll_interval,
    )
    if not result.complete:
        print(f"Not ready after {result.attempts} attempts; check again later with `records`.")
        return 3
    return 0


def cmd_records(args: argparse.Namespace) -> int:
    ctx = build_context(args)
    for r in ctx["client"].list_records():
        t = r.transcript.status if r.transcript else "-"
        tr = r.translation.status if r.translation else "-"
        print(f"{r.audio_id}  {r.original_filename}  farmer={r.meta.farmer_name}  "
              f"village={r.meta.village}  transcript={t}  translation={tr}")
    return 0


def cmd_versions(args: argparse.Namespace) -> int:
    ctx = build_context(args)
    versions = list_versions(ctx["client"], args.audio_id, args.guide_id, with_models=True,
                             max_workers=ctx["settings"].max_concurrent_requests)
    if not versions:
        print("No versions found")
        return 1
    for v in versions:
        print(f"v{v.version}  {v.model or 'N/A'}  {v.size / 1024:.2f} KB  {v.last_modified or ''}")
    return 0


def _interview_for(ctx: Dict[str, Any], audio_id: str, guide_id: str) -> Interview:
    found = ctx["interviews"].find_by_audio_and_guide(audio_id, guide_id)
    if found:
        return found
    guide = ctx["guides"].get(guide_id)
    return Interview(id=interview_id(audio_id, guide_id), guideId=guide_id,
                     guideName=guide.name if guide else "Unknown", audioId=audio_id)


def cmd_show(args: argparse.Namespace) -> int:
    ctx = build_context(args)
    version = args.version if args.version is not None else LATEST
    interview = ctx["interviews"].load_detail(_interview_for(ctx, args.audio_id, args.guide_id), version)
    if args.json:
        print(interview.model_dump_json(by_alias=True, indent=2))
    else:
        print(export.render_interview_text(interview))
    return 0


def cmd_analyze(args: argparse.Namespace) -> int:
    ctx = build_context(args)
    translation = ctx["client"].get_translation(args.audio_id)
    if not translation.ready:
        print("Translation is not ready yet")
        return 3
    ctx["client"].run_analysis(args.audio_id, args.guide_id)
    ctx["interviews"].invalidate()
    interview = ctx["interviews"].load_detail(_interview_for(ctx, args.audio_id, args.guide_id))
    print(export.render_interview_text(interview))
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    ctx = build_context(args)
    repo: InterviewRepository = ctx["interviews"]
    filters = InterviewFilters(
        guide=args.guide or "all", interviewer=args.interviewer or "all",
        village=args.village or "all", farmer=args.farmer or "", status=args.status or "all",
    )
    selected: List[Interview] = sort_interviews(filter_interviews(repo.all(), filters), "date", "desc")
    if not selected:
        print("No interviews match the current filters.")
        return 1
    detailed = repo.load_details(selected)

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)
    if args.bulk:
        path = out_dir / export.bulk_filename()
        path.write_text(export.render_bulk_text(detailed, describe_filters(filters)), encoding="utf-8")
        print(f"Wrote {len(detailed)} interviews to {path}")
        return 0
    for interview in detailed:
        if args.format == "docx":
            path = out_dir / export.interview_filename(interview, suffix=".docx")
            path.write_bytes(export.render_interview_docx(interview))
        else:
            path = out_dir / export.interview_filename(interview)
            path.write_text(export.render_interview_text(interview), encoding="utf-8")
        print(f"Wrote {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="interview-console", description="Farmer interview console CLI")
    p.add_argument("--base-url", help="Backend base URL (default: INTERVIEW_API_BASE)")
    p.add_argument("--log-level", default=None, help="Console log level (default: INTERVIEW_LOG_LEVEL)")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_check = sub.add_parser("check-guide", help="Parse guide files locally and report noise lines")
    p_check.add_argument("files", nargs="+", help="Guide files (.json or .txt)")
    p_check.add_argument("-v", "--verbose", action="store_true", help="List the parsed questions")
    p_check.set_defaults(func=cmd_check_guide)

    p_guide = sub.add_parser("upload-guide", help="Upload an interview guide")
    p_guide.add_argument("file")
    p_guide.add_argument("--name", help="Guide name (default: file name)")
    p_guide.add_argument("--tag", action="append", default=[], help="Tag (repeatable)")
    p_guide.set_defaults(func=cmd_upload_guide)

    p_audio = sub.add_parser("upload-audio", help="Upload a recording and wait for transcripts")
    p_audio.add_argument("file")
    p_audio.add_argument("--interviewer", required=True)
    p_audio.add_argument("--farmer", required=True, help="Farmer name or ID")
    p_audio.add_argument("--village", required=True)
    p_audio.add_argument("--date", required=True, help="Interview date, e.g. 2025-11-20")
    p_audio.add_argument("--tag", action="append", default=[], help="Tag (repeatable)")
    p_audio.add_argument("--no-wait", action="store_true", help="Do not poll for transcripts")
    p_audio.set_defaults(func=cmd_upload_audio)

    p_rec = sub.add_parser("records", help="List uploaded recordings")
    p_rec.set_defaults(func=cmd_records)

    p_ver = sub.add_parser("versions", help="List analysis versions of an (audio, guide) pair")
    p_ver.add_argument("audio_id")
    p_ver.add_argument("guide_id")
    p_ver.set_defaults(func=cmd_versions)

    p_show = sub.add_parser("show", help="Show answers of an analysis version")
    p_show.add_argument("audio_id")
    p_show.add_argument("guide_id")
    p_show.add_argument("--version", type=int, help="Version number (default: latest)")
    p_show.add_argument("--json", action="store_true", help="Print the interview as JSON")
    p_show.set_defaults(func=cmd_show)

    p_an = sub.add_parser("analyze", help="Run analysis of a translated recording against a guide")
    p_an.add_argument("audio_id")
    p_an.add_argument("guide_id")
    p_an.set_defaults(func=cmd_analyze)

    p_exp = sub.add_parser("export", help="Export interviews to text or Word files")
    p_exp.add_argument("--out", default="exports", help="Output directory")
    p_exp.add_argument("--format", choices=["txt", "docx"], default="txt")
    p_exp.add_argument("--bulk", action="store_true", help="One text report for all matching interviews")
    p_exp.add_argument("--guide", help="Guide id")
    p_exp.add_argument("--interviewer")
    p_exp.add_argument("--village")
    p_exp.add_argument("--farmer", help="Farmer name substring")
    p_exp.add_argument("--status", help="Status label, e.g. Draft or gpt-5.1-human-edit")
    p_exp.set_defaults(func=cmd_export)

    return p


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    setup_logging(args.log_level or settings.log_level, settings.log_file)
    try:
        return args.func(args)
    except ConsoleError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
