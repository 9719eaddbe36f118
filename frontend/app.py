import io
import requests
import pandas as pd
import plotly.express as px
import streamlit as st

st.set_page_config(page_title="Triagem de Currículos", layout="wide")

STATUS_LABELS = {
    "PENDING": "⏳ Pendente",
    "ANALYZING": "🤖 Analisando",
    "COMPLETED": "✅ Concluído",
    "ERROR": "❌ Erro",
    "UPLOADING": "📤 Enviando",
}

# =========================
# Helpers de estado/config
# =========================
def init_state():
    ss = st.session_state
    ss.setdefault("api_url", "http://localhost:8000")
    ss.setdefault("token", "")
    ss.setdefault("jobs_cache", [])
    ss.setdefault("candidates_cache", {})
    ss.setdefault("last_metrics", None)
init_state()

def headers():
    if not st.session_state.token:
        raise RuntimeError("Token JWT não configurado. Preencha o campo 'Supabase JWT' na barra lateral.")
    return {"Authorization": f"Bearer {st.session_state.token}"}

def api_request(method, path, timeout=60, **kwargs):
    base = st.session_state.api_url.rstrip("/")
    r = requests.request(method, f"{base}{path}", headers=headers(), timeout=timeout, **kwargs)
    if not r.ok:
        raise RuntimeError(f"{method} {path} -> {r.status_code}: {r.text}")
    return r.json()

def api_get(path, params=None):
    return api_request("GET", path, params=params)

def api_post(path, json_payload=None, files=None, timeout=120):
    return api_request("POST", path, json=json_payload, files=files, timeout=timeout)

def invalidate_caches():
    st.session_state.jobs_cache = []
    st.session_state.candidates_cache = {}

# =========================
# Barra lateral (Config)
# =========================
with st.sidebar:
    st.header("⚙️ Configurações")
    st.session_state.api_url = st.text_input("API URL", value=st.session_state.api_url, help="URL base da API FastAPI")
    st.session_state.token = st.text_input("Supabase JWT", type="password", value=st.session_state.token, help="JWT da sessão do recrutador no Supabase.")
    st.markdown("---")
    if st.button("🔄 Atualizar dados"):
        invalidate_caches()
        st.rerun()

if not st.session_state.token:
    st.warning("⚠️ Preencha o **Supabase JWT** na barra lateral antes de usar o painel.")

st.title("🧠 Triagem de Currículos – Painel")

# =========================
# Funções de dados
# =========================
def load_profile():
    return api_get("/users/me")

def load_jobs():
    if not st.session_state.jobs_cache:
        st.session_state.jobs_cache = api_get("/jobs/").get("jobs", [])
    return st.session_state.jobs_cache

def load_candidates(job_id):
    cache = st.session_state.candidates_cache
    if job_id not in cache:
        cache[job_id] = api_get(f"/jobs/{job_id}/candidates").get("items", [])
    return cache[job_id]

def candidates_frame(candidates):
    """Uma linha por candidato, com os campos do resultado da IA achatados."""
    rows = []
    for c in candidates:
        result = c.get("result") or {}
        rows.append({
            "id": c["id"],
            "arquivo": c.get("file_name"),
            "status": STATUS_LABELS.get(c.get("status"), c.get("status")),
            "nome": result.get("candidateName"),
            "score": c.get("match_score"),
            "cidade": result.get("city"),
            "bairro": result.get("neighborhood"),
            "experiência": result.get("yearsExperience"),
            "telefones": ", ".join(result.get("phoneNumbers") or []),
            "selecionado": c.get("is_selected", False),
        })
    return pd.DataFrame(rows)

# =========================
# Abas
# =========================
tabs = st.tabs(["📊 Dashboard", "💼 Vagas", "📄 Currículos", "🔎 Resultados"])

# -------------------------
# DASHBOARD
# -------------------------
with tabs[0]:
    st.subheader("Visão Geral")
    try:
        profile = load_profile()
    except Exception as e:
        st.warning(f"Carregar perfil: {e}")
        profile = None

    try:
        jobs = load_jobs()
    except Exception as e:
        st.warning(f"Carregar vagas: {e}")
        jobs = []

    if profile:
        unlimited = profile["resume_limit"] >= 9999
        col1, col2, col3 = st.columns(3)
        col1.metric("Plano", profile["plan"])
        col2.metric("Vagas", f"{len(jobs)} / {'∞' if profile['job_limit'] >= 9999 else profile['job_limit']}")
        col3.metric("Currículos analisados", f"{profile['resume_usage']} / {'∞' if unlimited else profile['resume_limit']}")
        if not unlimited:
            st.progress(min(1.0, profile["resume_usage"] / max(1, profile["resume_limit"])))

    if jobs:
        st.markdown("### Currículos por Vaga")
        df_jobs = pd.DataFrame(jobs)
        fig = px.bar(df_jobs, x="title", y="candidates_count")
        st.plotly_chart(fig, use_container_width=True)
    else:
        st.info("Ainda não há vagas cadastradas.")

# -------------------------
# VAGAS
# -------------------------
with tabs[1]:
    st.subheader("Gerenciar Vagas")

    st.markdown("#### Cadastrar nova vaga")
    with st.form("form_job"):
        title = st.text_input("Título da vaga")
        description = st.text_area("Descrição")
        criteria = st.text_area("Critérios de avaliação", help="Requisitos e diferenciais que a IA deve considerar.")
        submitted = st.form_submit_button("Salvar vaga")

    if submitted:
        if not title.strip():
            st.error("❌ O título da vaga é obrigatório.")
        else:
            try:
                resp = api_post("/jobs/", json_payload={"title": title, "description": description, "criteria": criteria})
                st.success(f"✅ Vaga criada! Código do link público: {resp['job']['short_code']}")
                invalidate_caches()
            except Exception as e:
                st.error(f"Falha ao criar vaga: {e}")

    st.markdown("#### Minhas Vagas")
    try:
        jobs = load_jobs()
        df_jobs = pd.DataFrame(jobs)
        if not df_jobs.empty:
            cols = ["title", "short_code", "candidates_count", "is_pinned", "auto_analyze", "is_paused"]
            st.dataframe(df_jobs[cols], use_container_width=True, height=350)
        else:
            st.info("Sem vagas cadastradas.")
    except Exception as e:
        st.error(f"Erro ao listar vagas: {e}")

# -------------------------
# CURRÍCULOS
# -------------------------
with tabs[2]:
    st.subheader("Upload e Análise")
    try:
        jobs = load_jobs()
    except Exception as e:
        st.warning(f"Carregar vagas: {e}")
        jobs = []

    job_map = {j["title"]: j["id"] for j in jobs if j.get("title") and j.get("id")}
    if not job_map:
        st.info("Cadastre uma vaga primeiro.")
    else:
        job_name = st.selectbox("Selecione a vaga", list(job_map.keys()), key="upload_job")
        job_id = job_map[job_name]

        pdfs = st.file_uploader("Enviar PDFs dos currículos", type=["pdf"], accept_multiple_files=True)
        if st.button("📤 Enviar currículos"):
            if not pdfs:
                st.error("❌ Selecione ao menos um PDF.")
            else:
                try:
                    files = [("files", (p.name, p.getvalue(), "application/pdf")) for p in pdfs]
                    resp = api_post(f"/jobs/{job_id}/candidates", files=files)
                    st.success(f"✅ {len(resp['created'])} currículo(s) recebido(s).")
                    for item in resp.get("rejected", []):
                        st.error(f"❌ {item['file_name']}: {item['reason']}")
                    for item in resp.get("warnings", []):
                        st.warning(f"⚠️ {item['file_name']}: {item['reason']}")
                    st.session_state.candidates_cache.pop(job_id, None)
                except requests.exceptions.ConnectionError:
                    st.error("❌ Falha de conexão com a API.")
                except Exception as e:
                    st.error(f"❌ Falha no upload: {e}")

        candidates = load_candidates(job_id)
        pending = [c for c in candidates if c["status"] == "PENDING"]
        st.caption(f"{len(pending)} currículo(s) pendente(s) de análise")

        if st.button("🤖 Analisar", disabled=not pending):
            with st.spinner(f"Analisando {len(pending)} currículo(s)..."):
                try:
                    metrics = api_post(f"/jobs/{job_id}/analysis", timeout=1800)
                    st.session_state.last_metrics = metrics
                    st.session_state.candidates_cache.pop(job_id, None)
                except Exception as e:
                    st.error(f"❌ Falha na análise: {e}")

        metrics = st.session_state.last_metrics
        if metrics and metrics.get("formatted_time"):
            st.success(f"✅ {metrics['processed_count']} currículo(s) analisado(s) em {metrics['formatted_time']}")

        df = candidates_frame(load_candidates(job_id))
        if not df.empty:
            st.dataframe(df[["arquivo", "status", "nome", "score"]], use_container_width=True, height=350)

# -------------------------
# RESULTADOS
# -------------------------
with tabs[3]:
    st.subheader("Resultados das Análises")
    try:
        jobs = load_jobs()
        job_map = {j["title"]: j["id"] for j in jobs if j.get("title") and j.get("id")}
        if not job_map:
            st.info("Ainda não há vagas.")
        else:
            job_name = st.selectbox("Vaga", list(job_map.keys()), key="results_job")
            df = candidates_frame(load_candidates(job_map[job_name]))
            df = df[df["score"].notna()] if not df.empty else df

            if df.empty:
                st.info("Ainda não há análises concluídas para esta vaga.")
            else:
                c1, c2, c3 = st.columns(3)
                name_filter = c1.text_input("Filtrar por nome")
                city_filter = c2.text_input("Filtrar por cidade")
                score_min = c3.number_input("Score mínimo", 0.0, 10.0, 0.0, 0.5)

                if name_filter:
                    df = df[df["nome"].astype(str).str.contains(name_filter, case=False, na=False)]
                if city_filter:
                    df = df[df["cidade"].astype(str).str.contains(city_filter, case=False, na=False)]
                df = df[df["score"].fillna(0) >= score_min].sort_values("score", ascending=False)

                st.dataframe(df.drop(columns=["id"]), use_container_width=True, height=450)

                st.markdown("##### Distribuição de Score (filtrada)")
                fig = px.histogram(df, x="score", nbins=20, range_x=[0, 10])
                st.plotly_chart(fig, use_container_width=True)

                buf = io.StringIO()
                df.to_csv(buf, index=False)
                st.download_button("⬇️ Baixar CSV", data=buf.getvalue(), file_name="triagem.csv", mime="text/csv")
    except Exception as e:
        st.error(f"Erro ao carregar resultados: {e}")
