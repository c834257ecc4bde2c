# frontend/app.py
import logging
from typing import Any, Dict, List, Optional

import pandas as pd
import streamlit as st

from interview_console.api_client import BackendClient
from interview_console.config import get_default_config, get_settings
from interview_console.contracts.models import AnswerBlock, Interview, PromptBlock, VerbatimQuote
from interview_console.errors import ConsoleError, NoVersionsAvailable
from interview_console.logging_utils import setup_logging
from interview_console.repositories.guides import GuideRepository
from interview_console.repositories.interviews import InterviewRepository
from interview_console.repositories.records import RecordRepository
from interview_console.services import export, uploads
from interview_console.services.gates import check_admin_password, check_user_password
from interview_console.services.listing import (
    ALL, SORT_FIELDS, InterviewFilters, describe_filters, filter_interviews, filter_options,
    format_date, interviews_frame, sort_interviews,
)
from interview_console.services.polling import start_background_poll
from interview_console.services.versions import LATEST, list_versions

logger = logging.getLogger(__name__)


# -------------------------------
# Page / App Setup
# -------------------------------
st.set_page_config(
    page_title="Farmer Interview Console",
    page_icon="🌾",
    layout="wide",
)

# A tiny key helper to keep keys unique and readable everywhere.
def K(*parts: str) -> str:
    return ":".join(parts)


settings = get_settings()


@st.cache_resource
def _init_logging() -> Optional[str]:
    return setup_logging(settings.log_level, settings.log_file)


_init_logging()


# -------------------------------
# Config & Backend
# -------------------------------
with st.sidebar:
    st.markdown("### ⚙️ Settings")
    api_base_url = st.text_input(
        "API Base URL",
        value=st.session_state.get("api_base_url", settings.api_base_url),
        key=K("sb", "api_base_url"),
        help="Transcription backend base URL (INTERVIEW_API_BASE).",
    )
    st.session_state["api_base_url"] = api_base_url.strip()
    with st.expander("Active configuration"):
        cfg = get_default_config(settings)
        cfg["base_url"] = st.session_state["api_base_url"] or None
        cfg["base_url_set"] = bool(st.session_state["api_base_url"])
        st.json(cfg)


def backend() -> Dict[str, Any]:
    """Client and repositories for the current session, rebuilt when the base URL changes."""
    base_url = st.session_state["api_base_url"]
    current = st.session_state.get("backend")
    if current is None or current["base_url"] != base_url:
        client = BackendClient(base_url, timeout=settings.request_timeout)
        guides = GuideRepository(client)
        current = {
            "base_url": base_url,
            "client": client,
            "guides": guides,
            "records": RecordRepository(client),
            "interviews": InterviewRepository(
                client, guides,
                max_workers=settings.max_concurrent_requests,
                human_edit_model=settings.human_edit_model,
            ),
        }
        st.session_state["backend"] = current
    return current


def show_error(action: str, e: Exception) -> None:
    logger.warning("%s failed: %s", action, e)
    st.error(f"{action} failed: {e}")


# Cache wrappers (invalidate with TTL to avoid stale dev state)
@st.cache_data(ttl=5)
def cached_versions(base_url: str, audio_id: str, guide_id: str) -> List[Dict[str, Any]]:
    client = BackendClient(base_url, timeout=settings.request_timeout)
    items = list_versions(client, audio_id, guide_id, with_models=True,
                          max_workers=settings.max_concurrent_requests)
    return [v.model_dump(by_alias=True) for v in items]


def status_text(interview: Interview) -> str:
    if interview.status.human_approved:
        return f"✅ {interview.status.label}"
    return interview.status.label


# -------------------------------
# Access gate
# -------------------------------
def require_login() -> None:
    if st.session_state.get(K("gate", "user")):
        return
    st.title("🌾 Farmer Interview Console")
    pw = st.text_input("Password", type="password", key=K("gate", "user_pw"))
    if st.button("Enter", key=K("gate", "user_btn")):
        if check_user_password(pw, settings):
            st.session_state[K("gate", "user")] = True
            st.rerun()
        st.error("Incorrect password")
    st.stop()


# -------------------------------
# Page Sections
# -------------------------------
def page_upload():
    st.subheader("🎙️ Upload Audio")
    b = backend()

    with st.form(K("up", "form"), clear_on_submit=False):
        audio = st.file_uploader("Audio file", type=["mp3", "wav", "m4a", "ogg", "webm", "mp4"],
                                 key=K("up", "file"))
        cols = st.columns(2)
        with cols[0]:
            interviewer = st.text_input("Interviewer name", key=K("up", "interviewer"))
            farmer = st.text_input("Farmer name / ID", key=K("up", "farmer"))
        with cols[1]:
            village = st.text_input("Village / District", key=K("up", "village"))
            date = st.date_input("Interview date", key=K("up", "date"))
        tags = st.text_input("Tags (comma separated)", key=K("up", "tags"))
        submitted = st.form_submit_button("Upload", use_container_width=True)

    if submitted:
        if audio is None:
            st.error("Please select an audio file")
            return
        data = audio.getvalue()
        size_mb = len(data) / (1024 * 1024)
        if size_mb > uploads.VERY_LARGE_FILE_MB:
            st.warning(f"Very large file ({size_mb:.1f} MB): upload and transcription will take several minutes.")
        elif size_mb > uploads.LARGE_FILE_MB:
            st.info(f"Large file ({size_mb:.1f} MB): upload may take a while.")
        meta = uploads.build_audio_meta(
            interviewer, farmer, village, date.isoformat() if date else "",
            [t.strip() for t in tags.split(",")],
        )
        try:
            with st.spinner("Uploading..."):
                audio_id = uploads.upload_audio(b["client"], audio.name, data, audio.type, meta)
        except ConsoleError as e:
            show_error("Upload", e)
            return
        st.success(f"Uploaded {audio.name} ({audio_id}). Transcription has started.")
        b["records"].invalidate()

        # the poll thread only touches this plain dict, never Streamlit itself
        job: Dict[str, Any] = {"audio_id": audio_id, "filename": audio.name, "messages": [], "result": None}
        _, cancel = start_background_poll(
            b["client"], audio_id,
            on_done=lambda result: job.update(result=result),
            on_progress=job["messages"].append,
            max_attempts=settings.poll_max_attempts,
            interval=settings.poll_interval,
        )
        job["cancel"] = cancel
        st.session_state.setdefault(K("up", "jobs"), []).append(job)

    jobs = st.session_state.get(K("up", "jobs"), [])
    if not jobs:
        return
    st.markdown("#### Processing")
    if st.button("Check status", key=K("up", "check")):
        st.rerun()
    for idx, job in enumerate(reversed(jobs)):
        result = job["result"]
        with st.container():
            st.markdown(f"**{job['filename']}** `{job['audio_id']}`")
            for msg in job["messages"]:
                st.write(f"✔️ {msg}")
            if result is None:
                st.info("Waiting for transcript and translation...")
                if st.button("Stop waiting", key=K("up", "cancel", str(idx))):
                    job["cancel"].set()
            elif result.complete:
                st.success("Transcript and translation are ready.")
            elif result.cancelled:
                st.warning("Stopped waiting. Check the Transcripts tab later.")
            else:
                st.warning(f"Not ready after {result.attempts} checks. Check the Transcripts tab later.")


def page_transcripts():
    st.subheader("📜 Transcripts")
    b = backend()
    repo: RecordRepository = b["records"]

    if st.button("Refresh", key=K("tr", "refresh")):
        repo.invalidate()
    try:
        records = repo.all()
    except ConsoleError as e:
        show_error("Loading records", e)
        return
    if not records:
        st.info("No recordings uploaded yet.")
        return

    df = pd.json_normalize([r.model_dump(by_alias=True) for r in records])
    st.markdown(f"**{len(df)}** recordings.")
    st.dataframe(df, use_container_width=True)

    audio_id = st.selectbox(
        "Recording", [r.audio_id for r in records], key=K("tr", "select"),
        format_func=lambda a: f"{repo.get(a).meta.farmer_name or a} ({repo.get(a).original_filename})",
    )
    record = repo.get(audio_id)
    if record is None:
        return

    cols = st.columns(2)
    try:
        hindi = b["client"].get_transcript(audio_id)
        english = b["client"].get_translation(audio_id)
    except ConsoleError as e:
        show_error("Loading transcripts", e)
        return
    with cols[0]:
        st.markdown("**Hindi transcript**")
        if hindi.ready:
            st.text_area("Hindi", hindi.data, height=300, disabled=True, key=K("tr", "hi", audio_id))
        else:
            st.info("Transcription in progress...")
    with cols[1]:
        st.markdown("**English translation**")
        if english.ready:
            st.text_area("English", english.data, height=300, disabled=True, key=K("tr", "en", audio_id))
        else:
            st.info("Translation in progress...")

    with st.expander("Edit details"):
        with st.form(K("tr", "meta", audio_id)):
            farmer = st.text_input("Farmer name / ID", record.meta.farmer_name)
            village = st.text_input("Village / District", record.meta.village)
            interviewer = st.text_input("Interviewer", record.meta.interviewer or "")
            date = st.text_input("Interview date", record.meta.interview_date or "")
            if st.form_submit_button("Save details"):
                try:
                    repo.update_metadata(audio_id, {
                        "farmerName": farmer, "village": village,
                        "interviewer": interviewer, "interviewDate": date,
                    })
                    b["interviews"].invalidate()
                    st.success("Details saved")
                except ConsoleError as e:
                    show_error("Saving details", e)

    with st.expander("Delete recording"):
        confirm = st.checkbox("I understand this deletes the audio and its transcripts",
                              key=K("tr", "confirm", audio_id))
        if st.button("Delete", key=K("tr", "delete", audio_id), disabled=not confirm):
            try:
                result = repo.delete(audio_id)
                b["interviews"].invalidate()
                if result.missing:
                    st.info("Recording was already deleted.")
                else:
                    st.success("Recording deleted")
            except ConsoleError as e:
                show_error("Delete", e)


def render_answers(interview: Interview) -> None:
    if interview.prompts:
        st.markdown("#### Prompts & Responses")
        for n, p in enumerate(interview.prompts, start=1):
            st.markdown(f"**Prompt {n}:** {p.prompt_text}")
            st.write(p.response or "—")
    st.markdown("#### Questions & Answers")
    if not interview.answers:
        st.info("No answers.")
    for n, block in enumerate(interview.answers, start=1):
        st.markdown(f"**Q{n}. {block.question}**")
        st.write(block.answer or "—")
        for quote in block.quotes or []:
            st.caption(f"“{quote.quote}”" + (f" ({quote.note})" if quote.note else ""))
        if block.reasoning:
            with st.expander("Reasoning"):
                st.write(block.reasoning)


def page_analyze():
    st.subheader("🔎 Analyze")
    b = backend()
    try:
        ready = b["records"].completed_translations()
        guides = b["guides"].all()
    except ConsoleError as e:
        show_error("Loading", e)
        return
    if not ready:
        st.info("No recordings with a completed translation yet.")
        return
    if not guides:
        st.info("No interview guides uploaded. Add one in the Admin tab.")
        return

    cols = st.columns(2)
    with cols[0]:
        audio_id = st.selectbox(
            "Recording", [r.audio_id for r in ready], key=K("an", "audio"),
            format_func=lambda a: next(f"{r.meta.farmer_name or a} ({r.original_filename})"
                                       for r in ready if r.audio_id == a),
        )
    with cols[1]:
        guide_id = st.selectbox("Guide", [g.id for g in guides], key=K("an", "guide"),
                                format_func=lambda g: b["guides"].get(g).name)

    if st.button("Run analysis", key=K("an", "run"), use_container_width=True):
        try:
            with st.spinner("Analyzing... this can take a minute"):
                b["client"].run_analysis(audio_id, guide_id)
            st.cache_data.clear()
            b["interviews"].invalidate()
            interview = b["interviews"].find_by_audio_and_guide(audio_id, guide_id)
            if interview is None:
                st.warning("Analysis finished but is not listed yet. Refresh the Interviews tab.")
                return
            st.session_state[K("an", "last")] = b["interviews"].load_detail(interview)
        except ConsoleError as e:
            show_error("Analysis", e)
            return

    last: Optional[Interview] = st.session_state.get(K("an", "last"))
    if last is not None and last.audio_id == audio_id and last.guide_id == guide_id:
        st.success(f"Analysis ready: {last.guide_name} / {last.farmer_name} ({last.status.label})")
        render_answers(last)


def edit_answers(interview: Interview) -> None:
    b = backend()
    with st.form(K("iv", "edit", interview.id)):
        prompts = []
        for p in interview.prompts:
            response = st.text_area(f"Prompt: {p.prompt_text}", p.response,
                                    key=K("iv", "edit", interview.id, "p", str(p.index)))
            prompts.append(PromptBlock(index=p.index, promptText=p.prompt_text, response=response))
        answers = []
        for n, block in enumerate(interview.answers):
            answer = st.text_area(f"Q{n + 1}. {block.question}", block.answer,
                                  key=K("iv", "edit", interview.id, "q", str(n)))
            quotes_raw = st.text_area(
                "Quotes (one per line)", "\n".join(q.quote for q in block.quotes or []),
                key=K("iv", "edit", interview.id, "qq", str(n)),
            )
            # unchanged quote lines keep their notes
            existing = {q.quote: q for q in block.quotes or []}
            quotes = [existing.get(line.strip()) or VerbatimQuote(quote=line.strip())
                      for line in quotes_raw.splitlines() if line.strip()]
            answers.append(AnswerBlock(question=block.question, answer=answer, quotes=quotes or None,
                                       reasoning=block.reasoning, index=block.index))
        if st.form_submit_button("Save as human-edited version"):
            try:
                updated = b["interviews"].save_edits(interview, answers, prompts)
                st.cache_data.clear()
                st.session_state[K("iv", "editing")] = None
                st.success(f"Saved as {updated.status.label}")
            except ConsoleError as e:
                show_error("Save", e)


def page_interviews():
    st.subheader("🗂️ Interviews")
    b = backend()
    repo: InterviewRepository = b["interviews"]

    if st.button("Refresh", key=K("iv", "refresh")):
        b["guides"].invalidate()
        repo.invalidate()
        st.cache_data.clear()
    try:
        interviews = repo.all()
        guides = b["guides"].all()
    except ConsoleError as e:
        show_error("Loading interviews", e)
        return
    if not interviews:
        st.info("No analysed interviews yet.")
        return

    # Filters
    cols = st.columns(5)
    with cols[0]:
        guide = st.selectbox("Guide", [ALL] + [g.id for g in guides], key=K("iv", "f_guide"),
                             format_func=lambda g: "All" if g == ALL else b["guides"].get(g).name)
    with cols[1]:
        opts = filter_options(interviews, "interviewer")
        interviewer = st.selectbox("Interviewer", [ALL] + [o["value"] for o in opts], key=K("iv", "f_int"),
                                   format_func=lambda v: "All" if v == ALL else
                                   next(o["label"] for o in opts if o["value"] == v))
    with cols[2]:
        vopts = filter_options(interviews, "village")
        village = st.selectbox("Village", [ALL] + [o["value"] for o in vopts], key=K("iv", "f_vil"),
                               format_func=lambda v: "All" if v == ALL else
                               next(o["label"] for o in vopts if o["value"] == v))
    with cols[3]:
        farmer = st.text_input("Farmer", key=K("iv", "f_farmer"), placeholder="Search farmer...")
    with cols[4]:
        statuses = sorted({i.status.label for i in interviews})
        status = st.selectbox("Status", [ALL] + statuses, key=K("iv", "f_status"),
                              format_func=lambda s: "All" if s == ALL else s)

    sort_cols = st.columns([2, 1])
    with sort_cols[0]:
        sort_field = st.selectbox("Sort by", list(SORT_FIELDS), index=SORT_FIELDS.index("date"),
                                  key=K("iv", "sort"))
    with sort_cols[1]:
        order = st.radio("Order", ["desc", "asc"], horizontal=True, key=K("iv", "order"))

    filters = InterviewFilters(guide=guide, interviewer=interviewer, village=village, farmer=farmer, status=status)
    shown = sort_interviews(filter_interviews(interviews, filters), sort_field, order)
    st.markdown(f"Showing **{len(shown)}** / {len(interviews)} interviews.")
    if not shown:
        st.info("No interviews match the current filters.")
        return
    df = interviews_frame(shown)
    df["date"] = df["date"].map(format_date)
    st.dataframe(df.drop(columns=["id"]), use_container_width=True)

    if st.button("Prepare bulk export", key=K("iv", "bulk")):
        try:
            with st.spinner("Loading answers..."):
                detailed = repo.load_details(shown)
            st.session_state[K("iv", "bulk_text")] = export.render_bulk_text(detailed, describe_filters(filters))
        except ConsoleError as e:
            show_error("Bulk export", e)
    bulk_text = st.session_state.get(K("iv", "bulk_text"))
    if bulk_text:
        st.download_button("Download all (.txt)", bulk_text, file_name=export.bulk_filename(),
                           mime="text/plain", key=K("iv", "bulk_dl"))

    # Detail
    st.markdown("---")
    selected_id = st.selectbox(
        "Open interview", [i.id for i in shown], key=K("iv", "open"),
        format_func=lambda x: next(f"{i.farmer_name or 'Unknown'} · {i.guide_name} · {format_date(i.date)}"
                                   for i in shown if i.id == x),
    )
    interview = repo.get(selected_id)
    if interview is None or not interview.audio_id:
        return

    try:
        versions = cached_versions(b["base_url"], interview.audio_id, interview.guide_id)
    except ConsoleError as e:
        show_error("Loading versions", e)
        versions = []
    choices = [LATEST] + [v["version"] for v in versions]
    version = st.selectbox(
        "Version", choices, key=K("iv", "version", selected_id),
        format_func=lambda v: "Latest" if v == LATEST else
        next(f"v{x['version']} · {x['model'] or 'N/A'}" for x in versions if x["version"] == v),
    )
    try:
        detail = repo.load_detail(interview, version)
    except NoVersionsAvailable as e:
        st.warning(str(e))
        return
    except ConsoleError as e:
        show_error("Loading interview", e)
        return

    st.markdown(f"**Status:** {status_text(detail)}")
    dl = st.columns(2)
    with dl[0]:
        st.download_button("Download (.txt)", export.render_interview_text(detail),
                           file_name=export.interview_filename(detail), mime="text/plain",
                           key=K("iv", "dl_txt", selected_id))
    with dl[1]:
        st.download_button(
            "Download (.docx)", export.render_interview_docx(detail),
            file_name=export.interview_filename(detail, suffix=".docx"),
            mime="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            key=K("iv", "dl_docx", selected_id),
        )

    with st.expander("Transcripts"):
        st.text_area("Hindi", detail.hindi_transcript or "Not available", height=200, disabled=True,
                     key=K("iv", "hi", selected_id))
        st.text_area("English", detail.english_transcript or "Not available", height=200, disabled=True,
                     key=K("iv", "en", selected_id))

    if st.session_state.get(K("iv", "editing")) == selected_id:
        edit_answers(detail)
        if st.button("Cancel editing", key=K("iv", "cancel_edit")):
            st.session_state[K("iv", "editing")] = None
            st.rerun()
    else:
        render_answers(detail)
        if st.button("Edit answers", key=K("iv", "start_edit")):
            st.session_state[K("iv", "editing")] = selected_id
            st.rerun()


def admin_guides(b: Dict[str, Any]) -> None:
    st.markdown("#### Interview guides")
    repo: GuideRepository = b["guides"]
    with st.form(K("ad", "guide_form"), clear_on_submit=True):
        guide_file = st.file_uploader("Guide file (.json or .txt)", type=["json", "txt"], key=K("ad", "guide_file"))
        name = st.text_input("Guide name (optional)", key=K("ad", "guide_name"))
        tags = st.text_input("Tags (comma separated)", key=K("ad", "guide_tags"))
        if st.form_submit_button("Upload guide") and guide_file is not None:
            try:
                qid = repo.upload(guide_file.name, guide_file.getvalue(), guide_name=name,
                                  tags=[t.strip() for t in tags.split(",") if t.strip()] or None)
                st.success(f"Guide uploaded ({qid})")
            except ConsoleError as e:
                show_error("Guide upload", e)

    try:
        guides = repo.all()
    except ConsoleError as e:
        show_error("Loading guides", e)
        return
    if not guides:
        st.info("No guides uploaded.")
        return
    st.dataframe(
        pd.DataFrame([{"id": g.id, "name": g.name, "questions": len(g.questions), "prompts": len(g.prompts)}
                      for g in guides]),
        use_container_width=True,
    )
    guide_id = st.selectbox("Guide", [g.id for g in guides], key=K("ad", "guide_sel"),
                            format_func=lambda g: repo.get(g).name)
    guide = repo.get(guide_id)
    with st.expander("Questions"):
        for n, q in enumerate(guide.questions, start=1):
            st.markdown(f"{n}. {q}")
        for p in guide.prompts:
            st.markdown(f"- _{p}_")
    cols = st.columns(2)
    with cols[0]:
        if st.button("Delete all analyses of this guide", key=K("ad", "del_analyses")):
            try:
                count = repo.delete_analyses(guide_id)
                b["interviews"].invalidate()
                st.cache_data.clear()
                st.success(f"Deleted analyses for {count} recording(s)")
            except ConsoleError as e:
                show_error("Delete analyses", e)
    with cols[1]:
        if st.button("Delete guide", key=K("ad", "del_guide")):
            try:
                repo.delete(guide_id)
                b["interviews"].invalidate()
                st.success("Guide deleted")
            except ConsoleError as e:
                show_error("Delete guide", e)


def admin_versions(b: Dict[str, Any]) -> None:
    st.markdown("#### Version control")
    try:
        interviews = b["interviews"].all()
    except ConsoleError as e:
        show_error("Loading interviews", e)
        return
    if not interviews:
        st.info("No analyses yet.")
        return
    st.dataframe(interviews_frame(interviews), use_container_width=True)
    pair = st.selectbox(
        "Interview", [i.id for i in interviews], key=K("ad", "pair"),
        format_func=lambda x: next(f"{i.farmer_name or i.audio_id} · {i.guide_name}" for i in interviews if i.id == x),
    )
    interview = b["interviews"].get(pair)
    if interview is None or not interview.audio_id:
        return
    try:
        versions = cached_versions(b["base_url"], interview.audio_id, interview.guide_id)
    except ConsoleError as e:
        show_error("Loading versions", e)
        return
    if not versions:
        st.info("No versions found.")
        return
    df = pd.DataFrame(versions)
    df["size"] = (df["size"] / 1024).round(2).astype(str) + " KB"
    st.dataframe(df, use_container_width=True)

    version = st.selectbox("Version", [v["version"] for v in versions], key=K("ad", "ver"))
    if st.button("Delete version", key=K("ad", "del_ver")):
        try:
            b["client"].delete_analysis(interview.audio_id, interview.guide_id, version=version)
            b["interviews"].invalidate()
            st.cache_data.clear()
            st.success(f"Deleted v{version}")
        except ConsoleError as e:
            show_error("Delete version", e)


def page_admin():
    st.subheader("🛠️ Admin")
    if not st.session_state.get(K("gate", "admin")):
        pw = st.text_input("Admin password", type="password", key=K("gate", "admin_pw"))
        if st.button("Unlock", key=K("gate", "admin_btn")):
            if check_admin_password(pw, settings):
                st.session_state[K("gate", "admin")] = True
                st.rerun()
            st.error("Incorrect password")
        return
    b = backend()
    admin_guides(b)
    st.markdown("---")
    admin_versions(b)


# -------------------------------
# Router (SINGLE render path)
# -------------------------------
require_login()
st.title("🌾 Farmer Interview Console")

if not st.session_state["api_base_url"]:
    st.warning("Set the API Base URL in the sidebar (or INTERVIEW_API_BASE) to connect to the backend.")
    st.stop()

tab_up, tab_tr, tab_an, tab_iv, tab_ad = st.tabs(
    ["Upload Audio", "Transcripts", "Analyze", "Interviews", "Admin"]
)

with tab_up:
    page_upload()

with tab_tr:
    page_transcripts()

with tab_an:
    page_analyze()

with tab_iv:
    page_interviews()

with tab_ad:
    page_admin()

# IMPORTANT:
# Do NOT call page_* functions again below.
# Duplicate calls = duplicate widgets = duplicate keys.
