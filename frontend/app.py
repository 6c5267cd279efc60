import os
import sys
import requests
import pandas as pd
import streamlit as st
from datetime import date
from typing import List, Dict, Any
from dotenv import load_dotenv
from pathlib import Path

load_dotenv()

# If BACKEND_URL is not set, run in local mode (call Python modules directly)
BACKEND_URL = os.getenv("BACKEND_URL", "").strip()
LOCAL_MODE = BACKEND_URL == ""

# Ensure project root is on sys.path when running on Streamlit Cloud
repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

if LOCAL_MODE:
    try:
        if "DATA_DIR" in st.secrets:
            os.environ["DATA_DIR"] = str(st.secrets["DATA_DIR"]).strip()
    except Exception:
        pass
    from workout_scheduler.models import RoutineCreate
    from workout_scheduler.service import CalendarService
    if "service" not in st.session_state:
        st.session_state.service = CalendarService.from_config()

from workout_scheduler.scheduler import expand_date_range, shift_month

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]
DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def fetch_calendar(year: int, month: int) -> Dict[str, Any]:
    if LOCAL_MODE:
        return st.session_state.service.month_calendar(year, month).model_dump()
    r = requests.get(f"{BACKEND_URL}/calendar/{year}/{month}", timeout=10)
    r.raise_for_status()
    return r.json()


def fetch_day(day: date) -> Dict[str, Any]:
    if LOCAL_MODE:
        return st.session_state.service.day_schedule(day).model_dump()
    r = requests.get(f"{BACKEND_URL}/schedule/{day.isoformat()}", timeout=10)
    r.raise_for_status()
    return r.json()


def toggle(day: date, routine_id: str, exercise_id: str) -> None:
    if LOCAL_MODE:
        st.session_state.service.toggle(day, routine_id, exercise_id)
        return
    r = requests.post(
        f"{BACKEND_URL}/completions/toggle",
        json={"date": day.isoformat(), "routine_id": routine_id, "exercise_id": exercise_id},
        timeout=10,
    )
    r.raise_for_status()


def create_routine(payload: Dict[str, Any]) -> Dict[str, Any]:
    if LOCAL_MODE:
        return st.session_state.service.create_routine(RoutineCreate(**payload)).model_dump()
    r = requests.post(f"{BACKEND_URL}/routines", json=payload, timeout=10)
    r.raise_for_status()
    return r.json()


def grid_frames(days: List[Dict[str, Any]]):
    """6x7 table of cell labels plus a matching table of cell colors."""
    labels, colors = [], []
    for week in range(6):
        row_labels, row_colors = [], []
        for d in days[week * 7:(week + 1) * 7]:
            num = int(d["date"][-2:])
            label = str(num)
            if d["has_obligations"]:
                label += f"  ({d['completed_count']}/{d['total_count']})"
            row_labels.append(label)
            css = "" if d["in_month"] else "color: #AAAAAA;"
            if d["has_obligations"] and d["completed_count"] > 0:
                alpha = 0.2 + d["intensity"] * 0.6
                css += f"background-color: rgba(52, 199, 89, {alpha:.2f});"
                if d["intensity"] > 0.7:
                    css += "color: #FFFFFF;"
            row_colors.append(css)
        labels.append(row_labels)
        colors.append(row_colors)
    return pd.DataFrame(labels, columns=DAY_NAMES), pd.DataFrame(colors, columns=DAY_NAMES)


st.set_page_config(page_title="Workout Calendar", page_icon="📅", layout="wide")

st.title("📅 Workout Calendar")
st.caption("Plan recurring routines and check off exercises day by day.")

with st.sidebar:
    st.header("Backend")
    if LOCAL_MODE:
        st.write("In-process service")
        st.caption(f"Data directory: {os.getenv('DATA_DIR', 'data')}")
    else:
        st.write(f"API at {BACKEND_URL}")
    if st.button("Check connection"):
        if LOCAL_MODE:
            st.session_state.service.ensure_loaded()
            errors = st.session_state.service.load_errors
            if errors:
                st.warning(f"Storage loaded with {len(errors)} error(s)")
            else:
                st.success("Storage readable")
        else:
            try:
                resp = requests.get(f"{BACKEND_URL}/health", timeout=5)
                resp.raise_for_status()
                st.success(f"Connected ({resp.json().get('status')})")
            except requests.RequestException as e:
                st.error(f"Cannot reach the API: {e}")

today = date.today()
if "view_month" not in st.session_state:
    st.session_state.view_month = (today.year, today.month)
if "selected_date" not in st.session_state:
    st.session_state.selected_date = today

year, month = st.session_state.view_month

nav_prev, nav_title, nav_next = st.columns([1, 4, 1])
with nav_prev:
    if st.button("◀ Prev"):
        st.session_state.view_month = shift_month(year, month, -1)
        st.rerun()
with nav_title:
    st.subheader(f"{MONTH_NAMES[month - 1]} {year}")
with nav_next:
    if st.button("Next ▶"):
        st.session_state.view_month = shift_month(year, month, 1)
        st.rerun()

try:
    calendar = fetch_calendar(year, month)
except requests.HTTPError as e:
    st.error(f"Server error: {e.response.text}")
    st.stop()
except requests.RequestException as e:
    st.error(f"Failed to load calendar: {e}")
    st.stop()

for msg in calendar.get("metadata", {}).get("load_errors", []):
    st.warning(msg)

labels, colors = grid_frames(calendar["days"])
st.dataframe(labels.style.apply(lambda _: colors, axis=None), hide_index=True, use_container_width=True)

stats = calendar["stats"]
s1, s2, s3 = st.columns(3)
s1.metric("Perfect Days", stats["perfect_days"])
s2.metric("Active Days", stats["active_days"])
s3.metric("Completion Rate", f"{stats['completion_rate']}%")

st.markdown("---")

selected = st.date_input("Day", value=st.session_state.selected_date)
st.session_state.selected_date = selected
heading = "Today's Workouts" if selected == today else f"Workouts for {selected.strftime('%x')}"
st.subheader(heading)

try:
    schedule = fetch_day(selected)
except requests.RequestException as e:
    st.error(f"Failed to load workouts: {e}")
    st.stop()

obligations = schedule.get("obligations", [])
if not obligations:
    st.info("Enjoy your rest day!" if selected == today else "This is a rest day")
else:
    for ob in obligations:
        checked = st.checkbox(ob["label"], value=ob["completed"], key=f"{ob['date']}:{ob['id']}")
        if checked != ob["completed"]:
            try:
                toggle(selected, ob["routine_id"], ob["exercise_id"])
            except requests.HTTPError as e:
                st.error(f"Server error: {e.response.text}")
            except Exception as e:
                st.error(f"Failed to save completion: {e}")
            else:
                st.rerun()

st.markdown("---")

# =============================
# Routine builder
# =============================
st.header("➕ Create Routine")

EXERCISE_TEMPLATES = [
    "Push-ups", "Squats", "Plank", "Burpees", "Jumping Jacks", "Lunges", "Mountain Climbers",
    "Sit-ups", "Pull-ups", "Deadlifts", "Bench Press", "Running", "Cycling", "Swimming",
]
SCHEDULE_TYPES = {"Weekdays": "weekdays", "Daily": "daily", "Specific Dates": "specific_dates", "Custom": "custom"}

with st.form("create_routine"):
    name = st.text_input("Routine Name", placeholder="e.g., Morning Strength")
    picked = st.multiselect("Exercises", EXERCISE_TEMPLATES)
    extra = st.text_input("Other exercises (optional, comma-separated)")
    col_s, col_r = st.columns(2)
    with col_s:
        sets = st.number_input("Sets", min_value=0, value=3)
    with col_r:
        reps = st.number_input("Reps", min_value=0, value=10)
    schedule_label = st.radio("Schedule", list(SCHEDULE_TYPES), horizontal=True)
    weekdays = st.multiselect("Days", DAY_NAMES, default=["Mon", "Wed", "Fri"])
    dates = st.date_input(
        "Date range (specific dates only)",
        value=[],
        help="Pick a start and an end date; every day from start to end is scheduled",
    )
    if SCHEDULE_TYPES[schedule_label] == "custom":
        st.caption("Custom schedules are coming soon and won't appear on the calendar yet.")
    is_active = st.toggle("Active", value=True)
    submitted = st.form_submit_button("Save Routine", type="primary")

if submitted:
    names = picked + [s.strip() for s in extra.split(",") if s.strip()]
    kind = SCHEDULE_TYPES[schedule_label]
    sched: Dict[str, Any] = {"type": kind}
    if kind == "weekdays":
        sched["weekdays"] = [DAY_NAMES.index(d) for d in weekdays]
    elif kind == "specific_dates":
        picked_range = list(dates) if isinstance(dates, (list, tuple)) else [dates]
        sched["dates"] = expand_date_range(*picked_range) if picked_range else []
    payload = {
        "name": name,
        "exercises": [{"name": n, "sets": int(sets), "reps": int(reps)} for n in names],
        "schedule": sched,
        "is_active": is_active,
    }
    try:
        routine = create_routine(payload)
        st.success(f"Workout routine '{routine['name']}' created successfully!")
    except requests.HTTPError as e:
        st.error(f"Server error: {e.response.text}")
    except Exception as e:
        st.error(f"Failed to save workout routine: {e}")
