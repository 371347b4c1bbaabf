# dronegrid/dashboard.py
"""
Streamlit Dashboard for the dock-grid coordination engine
Grid view, flight paths, conflicts, metrics and simulation controls
"""

import os

import streamlit as st
import plotly.graph_objects as go
import plotly.express as px
import pandas as pd
import requests

from dronegrid.core.airspace import DRONE_STATUS_COLORS, GRID_SIZE

# Page config
st.set_page_config(
    page_title="Drone Grid Coordination",
    page_icon="🚁",
    layout="wide",
    initial_sidebar_state="expanded"
)

# API base URL
API_BASE = os.environ.get("DRONEGRID_API_BASE", "http://localhost:8000")

IN_FLIGHT = {"taking-off", "transition-up", "flying", "transition-down", "returning"}

# Custom CSS
st.markdown("""
<style>
    .main-header {
        font-size: 2.5rem;
        font-weight: bold;
        color: #1e293b;
        text-align: center;
        margin-bottom: 1rem;
    }
    .score-good { color: #16a34a; font-weight: bold; }
    .score-fair { color: #ca8a04; font-weight: bold; }
    .score-poor { color: #dc2626; font-weight: bold; }
</style>
""", unsafe_allow_html=True)

st.markdown('<div class="main-header">🚁 Drone Grid Coordination System</div>', unsafe_allow_html=True)
st.caption("Multi-Drone Testing Site - 4×4 Grid Dock Layout")
st.markdown("---")

if 'metrics_history' not in st.session_state:
    st.session_state.metrics_history = []


def api_get(path: str, **params):
    response = requests.get(f"{API_BASE}{path}", params=params, timeout=5)
    response.raise_for_status()
    return response.json()


def api_post(path: str, payload=None):
    response = requests.post(f"{API_BASE}{path}", json=payload or {}, timeout=5)
    response.raise_for_status()
    return response.json()


def show_command_result(result: dict):
    notification = result['notification']
    if result['accepted']:
        st.success(notification['message'])
    else:
        st.warning(notification['message'])


def score_class(score: float) -> str:
    if score > 80:
        return "score-good"
    if score > 60:
        return "score-fair"
    return "score-poor"


# Load state
try:
    state = api_get("/api/v1/state")
    airspace = api_get("/api/v1/airspace")
    simulation = api_get("/api/v1/simulation")
except requests.RequestException:
    st.error("❌ API Server Offline")
    st.info("Run: `python -m dronegrid.api.main`")
    st.stop()

drones = state['drones']
conflicts = state['conflicts']
metrics = state['metrics']
targets = airspace['targets']

st.session_state.metrics_history.append({
    "tick": state['tick'],
    "active_flights": metrics['active_flights'],
    "safety_score": metrics['safety_score'],
    "efficiency_score": metrics['flight_efficiency_score'],
})
st.session_state.metrics_history = st.session_state.metrics_history[-200:]

# Sidebar - Control Panel and Simulation Controls
with st.sidebar:
    st.header("🎛️ Control Panel")

    drone_labels = {f"{d['name']} ({d['status']})": d['id'] for d in drones}
    selected_label = st.selectbox("Select Drone", list(drone_labels))
    selected_id = drone_labels[selected_label]
    selected = next(d for d in drones if d['id'] == selected_id)

    target_labels = [f"{t['description']} ({t['x']}, {t['y']})" for t in targets]
    target_index = st.selectbox("Select Target", range(len(targets)),
                                format_func=lambda i: target_labels[i])
    priority = st.radio("Priority", ["low", "medium", "high"], index=1, horizontal=True)

    flight_payload = {"drone_id": selected_id, "target_index": target_index, "priority": priority}

    col1, col2 = st.columns(2)
    with col1:
        if st.button("🚀 Start Flight", disabled=selected['status'] != 'idle',
                     use_container_width=True):
            show_command_result(api_post("/api/v1/flights/start", flight_payload))
    with col2:
        if st.button("📋 Queue Flight", use_container_width=True):
            show_command_result(api_post("/api/v1/flights/queue", flight_payload))

    if st.button("🛬 End Flight", disabled=selected['status'] not in IN_FLIGHT,
                 use_container_width=True):
        show_command_result(api_post("/api/v1/flights/end", {"drone_id": selected_id}))

    st.markdown("---")
    st.header("⏱️ Simulation")

    if simulation['running']:
        st.success(f"▶️ Running at {simulation['speed']}x (tick {simulation['tick']})")
    else:
        st.info(f"⏸️ Paused (tick {simulation['tick']})")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("▶️ Start Sim", disabled=simulation['running'], use_container_width=True):
            api_post("/api/v1/simulation/start")
            st.rerun()
    with col2:
        if st.button("⏸️ Pause", disabled=not simulation['running'], use_container_width=True):
            api_post("/api/v1/simulation/pause")
            st.rerun()

    speed = st.select_slider("Speed", options=[1, 2, 4, 8], value=simulation['speed']
                             if simulation['speed'] in (1, 2, 4, 8) else 1)
    if speed != simulation['speed']:
        api_post("/api/v1/simulation/speed", {"speed": speed})
        st.rerun()

    col1, col2 = st.columns(2)
    with col1:
        if st.button("⏭️ Step", use_container_width=True):
            api_post("/api/v1/tick")
            st.rerun()
    with col2:
        if st.button("🔄 Refresh", use_container_width=True):
            st.rerun()

    num_random = st.number_input("Random flights", 1, 16, 4)
    if st.button("🎲 Launch Random Flights", use_container_width=True):
        result = api_post("/api/v1/simulation/random_flights", {"num_requests": int(num_random)})
        st.info(f"Launched {result['launched']} flight(s)")

    if st.button("🗑️ Reset System", type="primary", use_container_width=True):
        show_command_result(api_post("/api/v1/reset"))
        st.session_state.metrics_history = []

# Conflict alert
if conflicts:
    lines = "\n".join(
        f"- Drones {c['drone_ids'][0]} & {c['drone_ids'][1]} - {c['resolution']}"
        for c in conflicts
    )
    st.error(f"⚠️ {len(conflicts)} flight path conflict(s) detected. "
             f"Automatic resolution applied:\n{lines}")

tab1, tab2, tab3, tab4, tab5 = st.tabs([
    "🗺️ Drone Grid",
    "✈️ Flight Paths",
    "📊 Metrics",
    "🧭 Airspace",
    "🔔 Notifications"
])

# TAB 1: Dock grid
with tab1:
    st.header("Drone Grid Visualization")

    conflict_ids = {i for c in conflicts for i in c['drone_ids']}

    fig = go.Figure()
    for status, color in DRONE_STATUS_COLORS.items():
        group = [d for d in drones if d['status'] == status]
        if not group:
            continue
        fig.add_trace(go.Scatter(
            x=[d['position']['x'] for d in group],
            y=[d['position']['y'] for d in group],
            mode='markers+text',
            marker=dict(
                size=46, color=color, symbol='square',
                line=dict(color=['#dc2626' if d['id'] in conflict_ids else '#475569'
                                 for d in group], width=3)
            ),
            text=[d['name'] for d in group],
            textposition='middle center',
            name=status,
            hovertext=[
                f"{d['name']}<br>Status: {d['status']}<br>Layer: {d['assigned_layer']}"
                f"<br>Quadrant: {d['quadrant']}<br>Battery: {d['battery_level']:.0f}%"
                for d in group
            ],
            hoverinfo='text'
        ))

    fig.update_layout(
        xaxis=dict(range=[-0.6, GRID_SIZE - 0.4], dtick=1, title='X'),
        yaxis=dict(range=[GRID_SIZE - 0.4, -0.6], dtick=1, title='Y', scaleanchor='x'),
        height=500,
        showlegend=True
    )
    st.plotly_chart(fig, use_container_width=True)

    drones_df = pd.DataFrame([
        {
            "Drone": d['name'],
            "Status": d['status'],
            "Layer": d['assigned_layer'],
            "Quadrant": d['quadrant'],
            "Target": d['target_position']['description'] if d['target_position'] else "",
            "Queued": "yes" if d['queued_mission'] else ""
        }
        for d in drones
    ])
    st.dataframe(drones_df, use_container_width=True)

# TAB 2: Flight paths
with tab2:
    st.header("Flight Path Visualization")

    show_overlaps = st.checkbox("Show anticipated path overlaps", value=False)

    fig = go.Figure()

    # Dock area
    fig.add_shape(type='rect', x0=-0.5, y0=-0.5, x1=GRID_SIZE - 0.5, y1=GRID_SIZE - 0.5,
                  line=dict(color='#94a3b8'), fillcolor='rgba(148,163,184,0.1)')

    fig.add_trace(go.Scatter(
        x=[t['x'] for t in targets], y=[t['y'] for t in targets],
        mode='markers+text', marker=dict(size=12, color='#0f172a', symbol='star'),
        text=[t['description'] for t in targets], textposition='top center',
        name='Targets'
    ))

    palette = px.colors.qualitative.Plotly
    for d in drones:
        if not d['flight_path']:
            continue
        xs = [p['x'] for p in d['flight_path']]
        ys = [p['y'] for p in d['flight_path']]
        fig.add_trace(go.Scatter(
            x=xs, y=ys, mode='lines+markers',
            line=dict(color=palette[d['id'] % len(palette)], width=2,
                      dash='solid' if d['status'] in IN_FLIGHT else 'dot'),
            name=f"{d['name']} (L{d['assigned_layer']}, {d['status']})"
        ))

    if conflicts:
        fig.add_trace(go.Scatter(
            x=[c['position']['x'] for c in conflicts],
            y=[c['position']['y'] for c in conflicts],
            mode='markers',
            marker=dict(size=16, color='red', symbol='x'),
            name=f"⚠️ Conflicts ({len(conflicts)})",
            hovertext=[
                f"D{c['drone_ids'][0]} & D{c['drone_ids'][1]}<br>Severity: {c['severity']}"
                f"<br>t={c['time_to_conflict']:.0f}s<br>{c['resolution']}"
                for c in conflicts
            ],
            hoverinfo='text'
        ))

    if show_overlaps:
        overlaps = api_get("/api/v1/path_overlaps")['overlaps']
        if overlaps:
            fig.add_trace(go.Scatter(
                x=[o['position']['x'] for o in overlaps],
                y=[o['position']['y'] for o in overlaps],
                mode='markers',
                marker=dict(size=14, color='orange', symbol='circle-open', line=dict(width=3)),
                name=f"Overlaps ({len(overlaps)})"
            ))
        st.write(f"🔍 {len(overlaps)} anticipated overlap(s) across all layers")

    fig.update_layout(
        xaxis=dict(title='X', dtick=1),
        yaxis=dict(title='Y', dtick=1, autorange='reversed', scaleanchor='x'),
        height=600
    )
    st.plotly_chart(fig, use_container_width=True)

    if conflicts:
        with st.expander("📋 Conflict Details", expanded=True):
            st.dataframe(pd.DataFrame([
                {
                    "ID": c['conflict_id'],
                    "Drones": f"{c['drone_ids'][0]} & {c['drone_ids'][1]}",
                    "X": c['position']['x'],
                    "Y": c['position']['y'],
                    "Distance": round(c['distance'], 2),
                    "Severity": c['severity'],
                    "Time (s)": c['time_to_conflict'],
                    "Resolution": c['resolution']
                }
                for c in conflicts
            ]), use_container_width=True)

# TAB 3: Metrics
with tab3:
    st.header("Operational Metrics")

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Active Flights", metrics['active_flights'])
    with col2:
        st.metric("Queued Flights", metrics['queued_flights'])
    with col3:
        st.metric("Completed Flights", metrics['completed_flights'])
    with col4:
        st.metric("Avg. Flight Time", f"{metrics['average_flight_time']:.1f}s")

    col1, col2 = st.columns(2)
    with col1:
        safety = metrics['safety_score']
        st.markdown(f"Safety Score: <span class='{score_class(safety)}'>{safety:.0f}%</span>",
                    unsafe_allow_html=True)
        st.progress(int(safety))
    with col2:
        efficiency = metrics['flight_efficiency_score']
        st.markdown(f"Efficiency Score: <span class='{score_class(efficiency)}'>{efficiency:.0f}%</span>",
                    unsafe_allow_html=True)
        st.progress(int(efficiency))

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Conflicts Detected", metrics['conflicts_detected'])
    with col2:
        st.metric("Conflicts Resolved", metrics['conflicts_resolved'])
    with col3:
        st.metric("Throughput", f"{metrics['throughput_rate']:.1f}/h")
    with col4:
        st.metric("Avg. Wait", f"{metrics['wait_time_average']:.0f}s")

    total_flights = metrics['active_flights'] + metrics['queued_flights'] + metrics['completed_flights']
    st.caption(f"Total Flights: {total_flights}")

    if len(st.session_state.metrics_history) > 1:
        history_df = pd.DataFrame(st.session_state.metrics_history).drop_duplicates('tick')
        fig = px.line(
            history_df,
            x='tick',
            y=['safety_score', 'efficiency_score'],
            markers=True,
            title="Scores Over Time"
        )
        st.plotly_chart(fig, use_container_width=True)

# TAB 4: Airspace structure
with tab4:
    st.header("Airspace Structure")
    st.caption("Vertical layering system for safe drone operations")

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Altitude Layers")
        st.dataframe(pd.DataFrame([
            {
                "Layer": layer['id'],
                "Name": layer['name'],
                "Altitude (m)": f"{layer['min_altitude']}-{layer['max_altitude']}",
                "Purpose": layer['purpose']
            }
            for layer in airspace['layers']
        ]), use_container_width=True)
    with col2:
        st.subheader("Quadrants")
        for quadrant in airspace['quadrants']:
            st.markdown(f"**{quadrant['name']}:** Docks {', '.join(map(str, quadrant['docks']))}")

    st.info("Even-numbered drones use Layer 3, odd-numbered drones use Layer 4 for "
            "horizontal transit. Only drones sharing a layer are checked against each other.")

# TAB 5: Notifications
with tab5:
    st.header("Notifications")

    notifications = api_get("/api/v1/notifications", limit=50)['notifications']
    if notifications:
        notes_df = pd.DataFrame(notifications)
        notes_df['time'] = pd.to_datetime(notes_df['timestamp'], unit='s')
        st.dataframe(
            notes_df[['time', 'level', 'kind', 'drone_id', 'message']],
            use_container_width=True
        )
    else:
        st.info("No notifications yet")

st.markdown("---")
