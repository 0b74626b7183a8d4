import json
from pathlib import Path
import streamlit as st

from statement_lens.config import load_config
from statement_lens.errors import StatementLensError
from statement_lens.llm_client import LLMClient
from statement_lens.models import AnalysisDepth
from statement_lens.orchestrator import create_analysis, run_pipeline
from statement_lens.storage import InMemoryAnalysisStore

PROJECT_DIR = Path(__file__).resolve().parent


st.set_page_config(page_title="Statement Lens", layout="wide")

st.title("Financial Statement Analysis")

with st.sidebar:
    st.header("Settings")
    config = load_config()
    provider = st.selectbox(
        "LLM Provider",
        ["openai", "deepseek", "azure"],
        index=["openai", "deepseek", "azure"].index(config.llm_provider),
    )
    model = st.text_input("LLM Model", value=config.llm_model_name)
    api_key = st.text_input("LLM API Key", value=config.llm_api_key, type="password")
    base_url = st.text_input("LLM Base URL", value=config.llm_base_url)
    depth = st.radio("Analysis depth", [item.value for item in AnalysisDepth], horizontal=True)

uploaded = st.file_uploader("Upload a balance sheet or income statement", type=["xlsx", "xlsm", "csv"])
run_btn = st.button("Analyze")

if run_btn:
    if not uploaded:
        st.error("Please upload a spreadsheet first.")
    elif uploaded.size > config.max_upload_bytes:
        st.error(f"File exceeds the {config.max_upload_bytes} byte upload limit.")
    else:
        llm = LLMClient(
            provider=provider,
            model=model,
            api_key=api_key,
            base_url=base_url,
            timeout=config.llm_timeout_seconds,
            max_retries=config.llm_max_retries,
            api_version=config.llm_api_version,
        )
        store = InMemoryAnalysisStore()
        content = uploaded.getvalue()
        analysis_id = create_analysis(store, uploaded.name, len(content), AnalysisDepth.parse(depth))
        output_dir = PROJECT_DIR / config.output_dir / f"analysis_{analysis_id}"
        try:
            with st.spinner("Analyzing, please wait..."):
                record = run_pipeline(analysis_id, content, depth, llm, store, output_dir, uploaded.name)
        except StatementLensError as exc:
            st.error(str(exc))
            st.stop()

        st.success(f"Analysis complete ({record.get('statement_type')})")
        for warning in record.get("warnings") or []:
            st.warning(warning)

        st.subheader("Financial ratios")
        ratio_cols = st.columns(3)
        for index, (name, value) in enumerate((record.get("ratios") or {}).items()):
            ratio_cols[index % 3].metric(name, f"{value:,.2f}")

        st.subheader("Insights")
        for insight in record.get("insights") or []:
            st.markdown(f"**{insight['title']}** ({insight['type']}): {insight['description']}")

        st.subheader("Recommendations")
        for item in record.get("recommendations") or []:
            st.markdown(f"- {item}")

        st.subheader("Variances")
        st.json(record.get("variances") or [])

        st.subheader("Charts")
        st.caption("The balance sheet 'Previous Period' series is simulated from the current period.")
        st.json(record.get("chart_data") or {})

        st.download_button(
            "Download analysis JSON",
            data=json.dumps(record, ensure_ascii=False, indent=2, default=str),
            file_name=f"analysis_{analysis_id}.json",
        )
