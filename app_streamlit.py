import json

import pandas as pd
import requests
import streamlit as st

import config

API_REPORT = f"{config.API_URL}/api/health-report"
API_HISTORY = f"{config.API_URL}/api/history"

SAMPLE_JSON = json.dumps({"age": 42, "smoker": True, "exercise": "rarely", "diet": "high sugar"}, indent=2)

STEP_LABELS = {
    "idle": "Ready to Start",
    "parsing": "Parsing Raw Inputs...",
    "extracting": "Extracting Health Factors...",
    "scoring": "Calculating Risk Matrix...",
    "recommending": "Generating AI Recommendations...",
    "completed": "Audit Complete",
    "error": "Processing Error",
}

st.set_page_config(page_title="Health Risk Profiler", page_icon="🩺", layout="centered")

st.title("🩺 Health Risk Profiler")
st.info("Wellness guidance for educational purposes only. Not medical advice.")

source = st.text_area("Source data (text / JSON):", value=SAMPLE_JSON, height=200)

if st.button("Run Analysis"):
    if not source.strip():
        st.warning("Please enter survey data first.")
    else:
        resp = requests.post(API_REPORT, json={"input": source}, timeout=60)
        data = resp.json()
        for step in data.get("steps", []):
            st.caption(STEP_LABELS.get(step, step))

        if resp.status_code != 200:
            st.error(data.get("error", "Processing Error"))
        elif data["report"]["status"] == "incomplete_profile":
            st.error(f"Profile Incomplete: {data['report']['reason']}")
        else:
            report = data["report"]
            risk = report["risk_profile"]
            st.subheader("📋 Patient Health Audit")
            st.metric(f"{risk['level']} Risk", f"{risk['score']}/100")
            st.json(report["normalized_data"])

            st.subheader("⚠️ Identified Risk Factors")
            if risk["factors"]:
                for f in risk["factors"]:
                    st.write("•", f)
            else:
                st.write("No major risk factors identified.")

            st.subheader("🧭 Wellness Roadmap")
            for rec in report["recommendations"]:
                st.markdown(f"**{rec['area']}** ({rec['priority']})  \n{rec['advice']}")

            with st.expander("System raw output"):
                st.json(report["raw_output"])

st.sidebar.header("📊 Query History")
hist = requests.get(API_HISTORY, params={"limit": config.HISTORY_LIMIT}, timeout=10)
rows = hist.json() if hist.status_code == 200 else []
if rows:
    st.sidebar.dataframe(pd.DataFrame(rows))
else:
    st.sidebar.info("No history yet.")
