"""Streamlit UI for SeatShuffle with roster preview and seat map."""
from __future__ import annotations

# Add src to sys.path so seat_shuffle can be found
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))

import pandas as pd
import streamlit as st

from seat_shuffle.csv_loader import load_roster
from seat_shuffle.errors import SeatShuffleError
from seat_shuffle.history import InMemoryHistoryStore
from seat_shuffle.policy import ConstraintPolicy, PairMode
from seat_shuffle.solver import SeatingEngine
from seat_shuffle.topology import LAYOUTS, Topology, layout_from_name

# -----------------------------
# Helpers
# -----------------------------

def history_store() -> InMemoryHistoryStore:
    """One history store per browser session."""
    if "history_store" not in st.session_state:
        st.session_state["history_store"] = InMemoryHistoryStore()
    return st.session_state["history_store"]


def seat_map_df(assignment: dict, topology: Topology) -> pd.DataFrame:
    """One column per partition, seats listed top to bottom."""
    columns = {}
    for partition, ids in topology.partitions().items():
        columns[f"Column {partition + 1}"] = [
            f"{pid}: {assignment.get(pid) or '-'}" for pid in ids if topology.is_active(pid)
        ]
    return pd.DataFrame({k: pd.Series(v, dtype=object) for k, v in columns.items()}).fillna("")

# -----------------------------
# Sidebar options
# -----------------------------

st.sidebar.header("Layout")
layout = st.sidebar.selectbox("Desk layout", LAYOUTS, index=1)
partitions = st.sidebar.number_input("Columns", min_value=1, max_value=10, value=3)
group_size = st.sidebar.number_input("Seats per group", min_value=2, max_value=8, value=4)
extra_seats = st.sidebar.number_input(
    "Extra empty seats",
    min_value=0,
    max_value=20,
    value=0,
    help="Seats beyond the roster size.",
)

st.sidebar.header("Shuffle options")
pair_mode = st.sidebar.selectbox(
    "Pair desks",
    [m.value for m in PairMode],
    index=0,
    help="Mix categories at each pair desk, keep them the same, or ignore them.",
)
avoid_previous_position = st.sidebar.checkbox("Avoid last seat", value=False)
avoid_previous_partner = st.sidebar.checkbox("Avoid last partner", value=False)
seed_text = st.sidebar.text_input("Random seed (optional)", value="")

# -----------------------------
# Main UI and previews
# -----------------------------

st.title("Seat Shuffle")

_roster_file = st.file_uploader("Roster CSV (name, gender, fixed_seat)", type="csv")

roster = None
if _roster_file is not None:
    try:
        roster = load_roster(_roster_file)
    except ValueError as e:
        st.error(f"Roster error: {e}")
    else:
        st.subheader("Roster preview")
        st.dataframe(
            pd.DataFrame(
                [{"name": p.identity, "category": p.category, "fixed_seat": p.pinned_position or ""} for p in roster]
            ),
            use_container_width=True,
        )

run_clicked = st.button("Shuffle seats", disabled=roster is None, key="shuffle_button")

# -----------------------------
# Solve
# -----------------------------

if run_clicked and roster is not None:
    try:
        seed = int(seed_text) if seed_text.strip() else None
        topology = layout_from_name(layout, len(roster) + int(extra_seats), int(partitions), int(group_size))
        policy = ConstraintPolicy(
            pair_mode=pair_mode,
            avoid_previous_position=avoid_previous_position,
            avoid_previous_partner=avoid_previous_partner,
        )
        store = history_store()
        result = SeatingEngine(seed=seed).run(roster, topology, policy, store.load())
        store.save(result.new_history)
    except (SeatShuffleError, ValueError) as e:
        st.error(f"Input validation error: {e}")
        st.stop()

    st.subheader("Seat map")
    st.dataframe(seat_map_df(result.assignment, topology), use_container_width=True)

    if result.unassigned_people:
        st.warning("Not seated: " + ", ".join(result.unassigned_people))
    if result.category_borrowed:
        st.info("Seated at a pair desk outside the pairing rule: " + ", ".join(result.category_borrowed))

    result_df = pd.DataFrame(
        {"position": list(result.assignment.keys()), "name": [v or "" for v in result.assignment.values()]}
    )
    st.download_button(
        "Download assignments as CSV",
        result_df.to_csv(index=False).encode("utf-8"),
        file_name="assignments.csv",
    )
