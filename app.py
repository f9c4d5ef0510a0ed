# app.py (beta factor dashboard)
import streamlit as st
import pandas as pd
import plotly.graph_objects as go
from datetime import date

from beta_groups import BETA_GROUPS, group_colors, group_names
from csv_export import ExportError, export_to_csv, generate_export_filename
from data_pipeline import (
    BetaCSVError,
    available_sectors,
    build_beta_views,
    configure_logging,
    select_raw_rows,
    select_series,
)
from index_prices import INDEX_SYMBOL, SCALE_FACTOR, align_index_prices
from metrics import filter_date_range, group_statistics, top_beta_changes

configure_logging()

st.set_page_config(layout="wide", page_title="Beta Factor Dashboard", initial_sidebar_state="expanded")
st.title("Beta Factor Dashboard")

RANGE_OPTIONS = {
    "All": "all",
    "1M": "month",
    "6M": "6months",
    "1Y": "year",
    "2Y": "2years",
    "3Y": "3years",
    "Custom": "custom",
}

# ----------------------
# Helpers & Loaders
# ----------------------
@st.cache_data
def load_views(csv_text):
    return build_beta_views(csv_text)


def view_label(view_mode):
    if view_mode["type"] == "total_sp":
        return "Total S&P (weighted)"
    weighting = "S&P weighted" if view_mode.get("sp_weighted") else "unweighted"
    return f"{view_mode.get('selected_sector')} ({weighting})"


# ----------------------
# Sidebar controls
# ----------------------
st.sidebar.header("Load data")
uploaded = st.sidebar.file_uploader("Upload CSV (Date, Sector, Sector_Weight, 1-88 Beta Values)", type=["csv"])
if uploaded is None:
    st.info("Upload a beta CSV to get started.")
    st.stop()

try:
    views = load_views(uploaded.getvalue().decode("utf-8-sig"))
except (BetaCSVError, UnicodeDecodeError) as e:
    st.error(f"Error processing CSV data. Please check the file format.\n\n{e}")
    st.stop()

st.sidebar.header("View mode")
mode = st.sidebar.radio("Series", options=["Total S&P (weighted)", "Sector breakdown"])
if mode == "Sector breakdown":
    sectors = available_sectors(views)
    view_mode = {
        "type": "sector_breakdown",
        "selected_sector": st.sidebar.selectbox("Sector", options=sectors, index=0 if sectors else None),
        "sp_weighted": st.sidebar.checkbox("S&P weighted", value=False),
    }
else:
    view_mode = {"type": "total_sp"}

st.sidebar.header("Factor groups")
selected_groups = st.sidebar.multiselect("Groups", options=group_names(), default=["Value", "Growth"])

st.sidebar.header("Date range")
range_label = st.sidebar.selectbox("Quick range", options=list(RANGE_OPTIONS), index=0)
date_range = {"type": RANGE_OPTIONS[range_label]}
if date_range["type"] == "custom":
    start_input = st.sidebar.date_input("Start date", value=None)
    end_input = st.sidebar.date_input("End date", value=None)
    date_range["start_date"] = start_input.isoformat() if start_input else None
    date_range["end_date"] = end_input.isoformat() if end_input else None

with st.sidebar.expander("Chart options", expanded=False):
    show_legend = st.checkbox("Show legend", value=True)
    chart_height = st.slider("Chart height", min_value=300, max_value=900, value=520, step=20)

# ----------------------
# Data for the current view
# ----------------------
series = select_series(views, view_mode)
filtered = filter_date_range(series, date_range)
raw_rows = select_raw_rows(views, view_mode)

tab_chart, tab_changes, tab_export = st.tabs(["Factor Groups", "Top Beta Changes", "Export"])

# ----------------------
# Chart Tab
# ----------------------
with tab_chart:
    st.subheader(f"Weekly factor groups: {view_label(view_mode)}")
    if filtered.empty:
        st.warning("No data in the selected date range. Try expanding the range.")
    elif not selected_groups:
        st.info("Select at least one factor group to plot.")
    else:
        stats = group_statistics(filtered[selected_groups])
        cols = st.columns(min(4, len(selected_groups)))
        for i, name in enumerate(selected_groups):
            cols[i % len(cols)].metric(f"{name} (mean)", f"{stats.loc[name, 'mean']:.4f}", f"σ {stats.loc[name, 'std']:.4f}", delta_color="off")

        # index overlay lives in this session only
        overlay_key = (view_label(view_mode), tuple(sorted(date_range.items(), key=lambda kv: kv[0])))
        col_load, col_show = st.columns([1, 3])
        with col_load:
            if st.button(f"Load {INDEX_SYMBOL} data"):
                with st.spinner(f"Fetching {INDEX_SYMBOL} closes..."):
                    combined = align_index_prices(filtered)
                st.session_state["index_overlay"] = (overlay_key, combined)
                if combined.empty:
                    st.warning(f"No {INDEX_SYMBOL} price data was retrieved.")
        overlay = st.session_state.get("index_overlay")
        combined = overlay[1] if overlay and overlay[0] == overlay_key else None
        with col_show:
            show_index = st.checkbox(
                f"Show {INDEX_SYMBOL} (standardized, scale {SCALE_FACTOR}×)",
                value=combined is not None and not combined.empty,
                disabled=combined is None or combined.empty,
            )

        colors = group_colors()
        fig = go.Figure()
        for name in selected_groups:
            fig.add_trace(go.Scatter(
                x=filtered.index, y=filtered[name], mode="lines", name=name,
                line=dict(color=colors[name], width=2),
            ))
        if show_index and combined is not None and not combined.empty:
            fig.add_trace(go.Scatter(
                x=combined.index, y=combined["standardized_price"], mode="lines",
                name=f"{INDEX_SYMBOL} (standardized)",
                line=dict(color="#111827", width=2, dash="dash"),
                customdata=combined[["price"]].to_numpy(),
                hovertemplate="%{x|%Y-%m-%d}<br>z×scale: %{y:.3f}<br>close: %{customdata[0]:,.2f}<extra></extra>",
            ))
        fig.update_layout(
            hovermode="x unified",
            legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
            margin=dict(l=40, r=20, t=60, b=40),
            height=chart_height,
            showlegend=show_legend,
            yaxis_title="Beta",
            xaxis_title="Week starting",
        )
        st.plotly_chart(fig, use_container_width=True)

        with st.expander("Factor group definitions"):
            st.dataframe(pd.DataFrame([
                {"Group": g["name"], "Factors": ", ".join(map(str, g["indices"])), "Description": g["description"]}
                for g in BETA_GROUPS
            ]).set_index("Group"))

# ----------------------
# Top Beta Changes Tab
# ----------------------
with tab_changes:
    st.subheader("Top 10 individual beta changes (last 4 weeks)")
    if raw_rows.empty:
        st.info("No data available")
    else:
        changes = top_beta_changes(raw_rows, date_range)
        if changes.empty:
            st.info("Insufficient data to calculate changes (need at least 2 observations in the last 4 weeks)")
        else:
            current_date = changes.loc[0, "current_date"]
            previous_date = changes.loc[0, "previous_date"]
            table = pd.DataFrame({
                "Rank": range(1, len(changes) + 1),
                "Beta #": changes["beta_index"],
                "Category": changes["category"],
                "Change %": changes["pct_change"].map(lambda x: f"{x:+.2f}%"),
                f"Current ({current_date})": changes["current_value"].map(lambda x: f"{x:.4f}"),
                f"Previous ({previous_date})": changes["previous_value"].map(lambda x: f"{x:.4f}"),
            }).set_index("Rank")
            st.dataframe(table, use_container_width=True)
            reference = "selected end date" if date_range["type"] == "custom" else "current date range"
            st.caption(f"Changes calculated from the oldest to newest data point within the last 4 weeks of the {reference}.")

# ----------------------
# Export Tab
# ----------------------
with tab_export:
    st.subheader("Export")
    try:
        csv_text = export_to_csv(filtered, set(selected_groups))
    except ExportError as e:
        st.error(str(e))
    else:
        filename = generate_export_filename(set(selected_groups), date_range, view_mode, today=date.today())
        st.write(f"{len(filtered)} weekly rows, {len(selected_groups)} group(s).")
        st.download_button("Download CSV", data=csv_text, file_name=filename, mime="text/csv")

st.caption("Tip: switch to a sector view and toggle S&P weighting to compare a sector's raw and weight-scaled exposures.")
