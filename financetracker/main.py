import logging
import os

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse, JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from financetracker.config import APP_NAME, CORS_ORIGINS, LOG_LEVEL
from financetracker.routes.ai_routes import router as ai_router
from financetracker.routes.auth_routes import router as auth_router
from financetracker.routes.budget_routes import router as budget_router
from financetracker.routes.dashboard_routes import router as dashboard_router
from financetracker.routes.transaction_routes import router as transaction_router
from financetracker.supabase_client import is_supabase_configured

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

if not is_supabase_configured():
    logger.warning("Supabase is not fully configured; data routes will fail until it is.")

app = FastAPI(title=APP_NAME)


@app.get("/api/v1/health-check")
async def health():
    return {"status": "ok", "message": "Backend is alive!", "supabase_configured": is_supabase_configured()}


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(transaction_router)
app.include_router(budget_router)
app.include_router(dashboard_router)
app.include_router(ai_router)

# Built browser client (index.html + assets/), if it sits next to the backend
frontend_dir = os.getenv("FRONTEND_DIR", os.path.join(os.path.dirname(__file__), "..", "frontend", "dist"))

if os.path.exists(frontend_dir):
    assets_dir = os.path.join(frontend_dir, "assets")
    if os.path.exists(assets_dir):
        app.mount("/assets", StaticFiles(directory=assets_dir), name="assets")

    # Client-side routes (/dashboard, /dashboard/ai-insights, /sign-in, ...) all load index.html
    @app.get("/{full_path:path}")
    async def serve_spa(full_path: str):
        if full_path.startswith("api/"):
            return JSONResponse(status_code=404, content={"detail": "Not Found"})

        index_file = os.path.join(frontend_dir, "index.html")
        if os.path.exists(index_file):
            return FileResponse(index_file)
        return {"error": "Frontend not found"}
else:
    @app.get("/")
    async def fallback():
        return {"status": f"{APP_NAME} backend is running, but the frontend build was not found."}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("financetracker.main:app", host="0.0.0.0", port=8000, reload=True)
