"""
Synthetic Cohort - Streamlit Report
===================================
"More Time Online? Less Peace of Mind"

Features:
1. Cohort generation controls (preset, size, seed)
2. Cohort overview dashboard
3. Research questions with test results and charts
4. Validation & verification panel
5. CSV export

Run with: streamlit run src/app.py
"""

import streamlit as st
import pandas as pd
import plotly.express as px
import yaml
from pathlib import Path
from datetime import datetime
from dataclasses import asdict

# Local imports
from analysis import describe, research_questions
from cohort_config import load_config
from generator import CohortGenerator, InvalidArgumentError
from models import NA_MARKER
from validation import CohortValidator, ValidationSeverity


CONFIG_DIR = Path(__file__).parent.parent / "configs"


# ============================================================
# PAGE CONFIG & SESSION STATE
# ============================================================

st.set_page_config(
    page_title="Social Media & Mental Health Simulation",
    layout="wide",
    initial_sidebar_state="expanded"
)

if 'cohort_df' not in st.session_state:
    st.session_state.cohort_df = None
if 'config' not in st.session_state:
    st.session_state.config = None


# ============================================================
# SIDEBAR - CONTROLS
# ============================================================

def render_sidebar():
    """Render sidebar controls"""
    st.sidebar.title("Cohort Simulation")
    st.sidebar.markdown("---")

    st.sidebar.subheader("⚙️ Simulation Parameters")

    presets = sorted(p.name for p in CONFIG_DIR.glob("*.yaml"))
    preset = st.sidebar.selectbox(
        "Model Preset",
        presets,
        index=presets.index("cohort_config.yaml") if "cohort_config.yaml" in presets else 0,
        help="Causal-chain model or the constant-rate reference baseline"
    )

    cohort_size = st.sidebar.number_input(
        "Cohort Size",
        min_value=1,
        max_value=20000,
        value=200,
        step=50,
        help="Number of synthetic individuals"
    )

    seed = st.sidebar.number_input(
        "Random Seed",
        min_value=0,
        max_value=999999,
        value=42,
        help="For reproducibility"
    )

    st.sidebar.markdown("---")

    col1, col2 = st.sidebar.columns(2)

    with col1:
        generate_clicked = st.button("🚀 Generate", type="primary", use_container_width=True)

    with col2:
        clear_clicked = st.button("🗑️ Clear", use_container_width=True)

    if clear_clicked:
        st.session_state.cohort_df = None
        st.session_state.config = None
        st.rerun()

    return {
        'generate': generate_clicked,
        'preset': preset,
        'cohort_size': int(cohort_size),
        'seed': int(seed),
    }


# ============================================================
# DATA GENERATION
# ============================================================

def generate_data(params: dict) -> bool:
    """Generate a cohort and store it in session state"""
    try:
        config = load_config(CONFIG_DIR / params['preset'])
        generator = CohortGenerator(config, seed=params['seed'])
        st.session_state.cohort_df = generator.generate_cohort(params['cohort_size'])
        st.session_state.config = config
        return True
    except (InvalidArgumentError, ValueError, OSError) as e:
        st.error(f"Generation failed: {e}")
        return False


# ============================================================
# DASHBOARD VIEWS
# ============================================================

def render_overview_tab():
    """Render cohort overview"""
    df = st.session_state.cohort_df

    if df is None:
        st.info("Generate data to view overview")
        return

    col1, col2, col3, col4 = st.columns(4)

    with col1:
        st.metric("Individuals", f"{len(df):,}")

    with col2:
        st.metric("Mean Daily Hours", f"{df['daily_hours'].mean():.1f}")

    with col3:
        st.metric("Compare Self", f"{df['compare_self'].mean():.1%}")

    with col4:
        st.metric("Took a Break", f"{df['took_break'].mean():.1%}")

    st.markdown("---")

    col1, col2 = st.columns(2)

    with col1:
        fig = px.histogram(
            df,
            x='daily_hours',
            nbins=30,
            title='Daily Social Media Use',
            color_discrete_sequence=['#2E86AB']
        )
        fig.update_layout(height=350, xaxis_title='Hours per day', yaxis_title='Count')
        st.plotly_chart(fig, use_container_width=True)

    with col2:
        scores = df[['loneliness', 'depression', 'anxiety']].melt(var_name='score', value_name='value')
        fig = px.box(
            scores,
            x='score',
            y='value',
            title='Mental-Health Scores (1-10)',
            color='score',
            color_discrete_sequence=px.colors.qualitative.Set2
        )
        fig.update_layout(height=350, showlegend=False, xaxis_title='', yaxis_title='Score')
        st.plotly_chart(fig, use_container_width=True)

    st.subheader("📋 Descriptive Statistics")
    st.dataframe(describe(df).round(2), use_container_width=True)


def render_research_tab():
    """Render the three research questions"""
    df = st.session_state.cohort_df

    if df is None:
        st.info("Generate data to view research questions")
        return

    try:
        rq = research_questions(df)
    except ValueError as e:
        st.warning(f"Not enough data for analysis: {e}")
        return

    # RQ1
    st.subheader("1️⃣ Daily use vs loneliness")
    corr = rq['hours_vs_loneliness']
    fit = rq['hours_vs_loneliness_fit']
    st.write(
        f"Pearson r = **{corr.r:.3f}** "
        f"({corr.confidence:.0%} CI {corr.ci_low:.3f} to {corr.ci_high:.3f}), "
        f"p = {corr.p_value:.4f}, n = {corr.n}. "
        f"Slope = {fit.slope:.3f} points per hour (R² = {fit.r_squared:.3f})."
    )
    fig = px.scatter(
        df,
        x='daily_hours',
        y='loneliness',
        opacity=0.6,
        title='Loneliness by Daily Hours',
        color_discrete_sequence=['#2E86AB']
    )
    xs = [df['daily_hours'].min(), df['daily_hours'].max()]
    fig.add_scatter(
        x=xs,
        y=[fit.intercept + fit.slope * x for x in xs],
        mode='lines',
        name='OLS fit',
        line=dict(color='#e74c3c')
    )
    st.plotly_chart(fig, use_container_width=True)

    # RQ2
    st.subheader("2️⃣ Social comparison and depression")
    tt = rq['depression_by_comparison']
    st.write(
        f"Mean depression {tt.mean_yes:.2f} (compare, n = {tt.n_yes}) vs "
        f"{tt.mean_no:.2f} (no compare, n = {tt.n_no}); "
        f"Welch t = {tt.t_statistic:.3f}, p = {tt.p_value:.4f}."
    )
    plot_df = df.assign(compare_self=df['compare_self'].map({1: 'Yes', 0: 'No'}))
    fig = px.box(
        plot_df,
        x='compare_self',
        y='depression',
        color='compare_self',
        title='Depression by Social Comparison',
        color_discrete_map={'Yes': '#dc3545', 'No': '#28a745'}
    )
    fig.update_layout(showlegend=False, xaxis_title='Compares self to others')
    st.plotly_chart(fig, use_container_width=True)

    # RQ3
    st.subheader("3️⃣ Taking a break")
    outcome = rq['break_outcome']
    col1, col2 = st.columns(2)
    with col1:
        st.metric("Took a Break", f"{outcome.n_took_break:,}", help=f"{outcome.break_rate:.1%} of cohort")
    with col2:
        st.metric("Felt Better", f"{outcome.felt_better_rate:.1%}", help="Among those who took a break")

    if outcome.n_took_break:
        counts = pd.Series({
            'Felt better': outcome.n_felt_better,
            'Did not': outcome.n_took_break - outcome.n_felt_better,
        })
        fig = px.bar(
            x=counts.index,
            y=counts.values,
            title='Outcome After a Break',
            color=counts.index,
            color_discrete_sequence=px.colors.qualitative.Pastel
        )
        fig.update_layout(xaxis_title='', yaxis_title='Count', showlegend=False)
        st.plotly_chart(fig, use_container_width=True)


def render_validation_tab():
    """Render Chain-of-Verification results"""
    df = st.session_state.cohort_df

    if df is None:
        st.info("Generate data to run validation")
        return

    validator = CohortValidator(st.session_state.config)
    results = validator.validate_all(df)
    summary = validator.get_summary()

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Checks", summary['total'])
    col2.metric("Passed", summary['passed'])
    col3.metric("Warnings", summary['warnings'])
    col4.metric("Failed", summary['failed'])

    for r in results:
        line = f"{r.severity.value} **{r.name}**: {r.message}"
        if r.expected:
            line += f" (expected {r.expected})"
        if r.severity == ValidationSeverity.FAIL:
            st.error(line)
        elif r.severity == ValidationSeverity.WARNING:
            st.warning(line)
        else:
            st.write(line)


def render_export_tab():
    """Render data export options"""
    df = st.session_state.cohort_df

    if df is None:
        st.info("Generate data to enable export")
        return

    st.subheader("📥 Export Data")

    col1, col2 = st.columns(2)

    with col1:
        st.write(f"Rows: {len(df):,} | Columns: {len(df.columns)}")
        st.download_button(
            "📄 Download Cohort CSV",
            df.to_csv(index=False, na_rep=NA_MARKER),
            "simulated_social_media_data.csv",
            "text/csv",
            use_container_width=True
        )

    with col2:
        config = st.session_state.config
        if config:
            st.download_button(
                "⚙️ Download Config YAML",
                yaml.dump(asdict(config), default_flow_style=False, sort_keys=False),
                "cohort_config_used.yaml",
                "text/yaml",
                use_container_width=True
            )

    st.markdown("---")
    st.subheader("👀 Data Preview")
    st.dataframe(df.head(100), use_container_width=True)


# ============================================================
# MAIN APP
# ============================================================

def main():
    """Main application entry point"""
    params = render_sidebar()

    st.title("More Time Online? Less Peace of Mind")
    st.markdown("""
    **Synthetic cohort** linking daily social-media use with loneliness,
    depression and anxiety, social comparison, and taking a break.
    """)

    if params['generate']:
        with st.spinner("Generating synthetic cohort..."):
            if generate_data(params):
                st.success("✅ Cohort generated successfully!")

    st.markdown("---")

    tab1, tab2, tab3, tab4 = st.tabs([
        "📊 Overview",
        "🔬 Research Questions",
        "✅ Validation",
        "📥 Export"
    ])

    with tab1:
        render_overview_tab()

    with tab2:
        render_research_tab()

    with tab3:
        render_validation_tab()

    with tab4:
        render_export_tab()

    st.markdown("---")
    st.caption(
        "Synthetic data only | "
        "Chain-of-Verification Enabled | "
        f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}"
    )


if __name__ == "__main__":
    main()
