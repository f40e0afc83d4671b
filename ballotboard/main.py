# main.py
import logging

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from ballotboard import config
from ballotboard.routes.election_routes import router as election_router
from ballotboard.routes.report_routes import router as report_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="BallotBoard - University Election Admin API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(election_router)
app.include_router(report_router)


@app.get("/health", tags=["Root"])
async def health_check():
    return {"status": "healthy", "database": "MongoDB"}


@app.get("/", tags=["Root"])
def read_root():
    return {"message": "Welcome to the BallotBoard Election Admin API"}


@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return Response(status_code=204)
