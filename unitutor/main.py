from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from unitutor.routes import availability, bookings, profile, programs, reports, requests, tutors
from dotenv import load_dotenv
import logging
import os

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(
    redirect_slashes=False,
    title="UniTutor API",
    description="API for the university tutoring marketplace",
    version="1.0.0",
    openapi_tags=[
        {
            "name": "Profile",
            "description": "Learner/tutor role and profile synchronization",
        },
        {
            "name": "Availability",
            "description": "Tutor availability slots, with placeholder slots when none exist",
        },
    ],
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin for origin in [os.getenv("FRONTEND_URL")] if origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(profile.router, prefix="/profile", tags=["Profile"])
app.include_router(tutors.router, prefix="/tutors", tags=["Tutors"])
app.include_router(availability.router, prefix="/availability", tags=["Availability"])
app.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])
app.include_router(programs.router, prefix="/programs", tags=["Programs"])
app.include_router(requests.router, prefix="/requests", tags=["Requests"])
app.include_router(reports.router, prefix="/reports", tags=["Reports"])

@app.get("/healthz")
def healthz():
    return {"status": "ok"}
