import pandas as pd
import streamlit as st

from tickerdeck.config import Settings
from tickerdeck.dashboard import Dashboard
from tickerdeck.log import setup_logging
from tickerdeck.store import SORT_CRITERIA, TIMEFRAMES

st.set_page_config(layout="wide", page_title="Tickerdeck", initial_sidebar_state="expanded")

# ── Palettes ─────────────────────────────────────────────────────────────────
THEMES = {
    "dark":  {"BG": "#0b1120", "PANEL": "#151d2e", "BORDER": "#2d3748", "TXT": "#f0f4f8", "DIM": "#94a3b8"},
    "light": {"BG": "#f8fafc", "PANEL": "#ffffff", "BORDER": "#e2e8f0", "TXT": "#0f172a", "DIM": "#64748b"},
}
FONT_MONO = "'JetBrains Mono','IBM Plex Mono','SF Mono',monospace"
SORT_LABELS = {"": "Default order", "symbol": "Symbol", "price": "Price", "change": "Change", "volume": "Volume"}
TOAST_ICONS = {"success": "✅", "error": "⚠️", "info": "ℹ️"}


@st.cache_resource(show_spinner="Loading market data…")
def get_dashboard() -> Dashboard:
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    dash = Dashboard.from_settings(settings)
    dash.start()
    return dash


dash = get_dashboard()
store = dash.store
pal = THEMES[store.theme]

st.markdown(f"""<style>
html,body,[data-testid="stAppViewContainer"],[data-testid="stApp"]
  {{background:{pal['BG']}!important;color:{pal['TXT']}}}
[data-testid="stSidebar"]{{background:{pal['PANEL']}!important;border-right:1px solid {pal['BORDER']}!important}}
[data-testid="stVerticalBlockBorderWrapper"]{{background:{pal['PANEL']};border-color:{pal['BORDER']}!important}}
.td-symbol{{font-family:{FONT_MONO};font-weight:700;font-size:1.05rem}}
.td-dim{{color:{pal['DIM']};font-size:.8rem}}
.td-price{{font-family:{FONT_MONO};font-size:1.3rem;font-weight:600}}
.td-positive{{color:#10b981}} .td-negative{{color:#ef4444}}
</style>""", unsafe_allow_html=True)


# ── Widget callbacks ─────────────────────────────────────────────────────────
def _on_search():
    dash.search(st.session_state.td_search)

def _on_sort():
    dash.sort(st.session_state.td_sort)

def _on_timeframe():
    dash.set_timeframe(st.session_state.td_timeframe)

def _on_view_mode():
    dash.set_view_mode(st.session_state.td_view_mode)

def _on_chart_type():
    dash.set_chart_type(st.session_state.td_chart_type)


if "td_search" not in st.session_state:
    st.session_state.td_search = store.query
if "td_sort" not in st.session_state:
    st.session_state.td_sort = store.sort
if "td_timeframe" not in st.session_state:
    st.session_state.td_timeframe = store.timeframe
if "td_view_mode" not in st.session_state:
    st.session_state.td_view_mode = store.view_mode
if "td_chart_type" not in st.session_state:
    st.session_state.td_chart_type = store.chart_type

# ── Sidebar ──────────────────────────────────────────────────────────────────
with st.sidebar:
    st.markdown("### 📈 Tickerdeck")
    theme_label = "☀️ Light Mode" if store.theme == "light" else "🌙 Dark Mode"
    st.button(theme_label, on_click=dash.toggle_theme, use_container_width=True)
    st.radio("View", ["grid", "table"], key="td_view_mode", on_change=_on_view_mode,
             format_func=str.title, horizontal=True)
    st.radio("Chart", ["line", "bar"], key="td_chart_type", on_change=_on_chart_type,
             format_func=str.title, horizontal=True)
    st.button("⟳ Refresh", on_click=dash.refresh, use_container_width=True)

# ── Control bar ──────────────────────────────────────────────────────────────
c_search, c_sort, c_tf = st.columns([3, 1, 1])
with c_search:
    st.text_input("Search", key="td_search", on_change=_on_search,
                  placeholder="Search symbol or company", label_visibility="collapsed")
with c_sort:
    st.selectbox("Sort", list(SORT_CRITERIA), key="td_sort", on_change=_on_sort,
                 format_func=lambda c: SORT_LABELS.get(c, c), label_visibility="collapsed")
with c_tf:
    st.selectbox("Timeframe", list(TIMEFRAMES), key="td_timeframe", on_change=_on_timeframe,
                 format_func=str.title, label_visibility="collapsed")


def _change_html(direction, *parts):
    return f'<span class="td-{direction}">{" ".join(parts)}</span>'


def _render_summary(summary, status):
    cols = st.columns(5)
    for col, key in zip(cols, ("sp500", "nasdaq", "dow_jones")):
        idx = summary[key]
        col.metric(idx["name"], idx["value"], idx["change_percent"] if idx["direction"] else None)
    cols[3].metric("Total Volume", summary["total_volume"])
    with cols[4]:
        icon = "⏳" if status["refreshing"] else "✔"
        st.caption(f"{icon} {status['label']}")
        if status["source"]:
            st.caption(f"Source: {status['source']}")


def _render_cards(cards):
    if not cards:
        st.info("No stocks match your search")
        return
    grid = st.columns(4)
    for i, card in enumerate(cards):
        with grid[i % 4].container(border=True):
            marker = " 🔹" if card["selected"] else ""
            st.markdown(
                f'<div class="td-symbol">{card["symbol"]}{marker}</div>'
                f'<div class="td-dim">{card["name"]}</div>'
                f'<div class="td-price">{card["price"]}</div>'
                + _change_html(card["direction"], card["change"], f'({card["change_percent"]})')
                + f'<div class="td-dim">{card["sector"]} · Vol: {card["volume"]}</div>',
                unsafe_allow_html=True,
            )
            b_fav, b_sel = st.columns(2)
            b_fav.button("★" if card["favorite"] else "☆", key=f"fav_{card['symbol']}",
                         on_click=dash.toggle_favorite, args=(card["symbol"],))
            b_sel.button("Chart", key=f"sel_{card['symbol']}",
                         on_click=dash.select, args=(card["symbol"],))


def _render_table(rows):
    if not rows:
        st.info("No stocks match your search")
        return
    widths = [1, 3, 2, 2, 2, 3, 1, 1]
    header = st.columns(widths)
    for col, title in zip(header, ["Symbol", "Company", "Price", "Change", "Change %", "Volume", "", ""]):
        col.markdown(f"**{title}**")
    for row in rows:
        cols = st.columns(widths)
        cols[0].markdown(f'<span class="td-symbol">{row["symbol"]}</span>', unsafe_allow_html=True)
        cols[1].write(row["name"])
        cols[2].write(row["price"])
        cols[3].markdown(_change_html(row["direction"], row["change"]), unsafe_allow_html=True)
        cols[4].markdown(_change_html(row["direction"], row["change_percent"]), unsafe_allow_html=True)
        cols[5].write(row["volume"])
        cols[6].button("★" if row["favorite"] else "☆", key=f"tfav_{row['symbol']}",
                       on_click=dash.toggle_favorite, args=(row["symbol"],))
        cols[7].button("📈", key=f"tsel_{row['symbol']}",
                       on_click=dash.select, args=(row["symbol"],))


def _render_watchlist(watchlist):
    st.markdown("#### ★ Watchlist")
    if watchlist["empty"]:
        st.caption(watchlist["message"])
        st.caption(watchlist["hint"])
        return
    for item in watchlist["items"]:
        c_info, c_rm = st.columns([4, 1])
        c_info.markdown(
            f'<span class="td-symbol">{item["symbol"]}</span> {item["price"]} '
            + _change_html(item["direction"], item["change_percent"]),
            unsafe_allow_html=True,
        )
        c_rm.button("✕", key=f"rm_{item['symbol']}",
                    on_click=dash.remove_from_watchlist, args=(item["symbol"],))


def _render_detail(detail, chart):
    st.markdown(f"#### {detail['name']} <span class='td-dim'>{detail['symbol']}</span>",
                unsafe_allow_html=True)
    cols = st.columns(6)
    for col, (label, key) in zip(cols, [("Price", "price"), ("Open", "open"), ("High", "high"),
                                        ("Low", "low"), ("Volume", "volume"), ("Market Cap", "market_cap")]):
        col.caption(label)
        col.markdown(f"**{detail[key]}**")
    if not chart["prices"]:
        st.caption("Select a stock to view its chart")
        return
    frame = pd.DataFrame({"Price": chart["prices"]}, index=pd.to_datetime(chart["dates"]))
    if chart["chart_type"] == "bar":
        st.bar_chart(frame, color=chart["color"], height=320)
    else:
        st.line_chart(frame, color=chart["color"], height=320)


# ── Views (re-rendered on every refresh tick) ────────────────────────────────
@st.fragment(run_every=dash.loop.interval)
def render_views():
    for note in dash.drain_notifications():
        st.toast(note.message, icon=TOAST_ICONS.get(note.level, "ℹ️"))
    state = dash.render()
    _render_summary(state["summary"], state["status"])
    main, side = st.columns([3, 1])
    with main:
        if state["view_mode"] == "table":
            _render_table(state["table"])
        else:
            _render_cards(state["cards"])
        _render_detail(state["detail"], state["chart"])
    with side:
        _render_watchlist(state["watchlist"])


render_views()
