"""Seed demo users, talent profiles and published projects into Redis.

Usage:
    python -m scripts.seed_demo_data              # seed into settings.redis_url
    python -m scripts.seed_demo_data --talent 12  # more talent profiles
"""

from __future__ import annotations

import argparse
import asyncio
import random
import uuid
from datetime import datetime, timedelta, timezone

import redis.asyncio as aioredis

from app.config import settings
from app.models import Profile, Project, User
from app.state import StateManager

SAMPLE_PROJECTS = [
    {
        "name": "AI Health Assistant",
        "one_liner": "AI-powered personal health companion for chronic disease management",
        "sector": "Healthcare AI",
        "location": "Beijing",
        "stage": "Seed",
        "vision": "Make quality healthcare accessible to everyone through AI",
        "problem": "Chronic disease patients struggle with daily management and medication adherence",
        "solution": "AI companion that monitors, reminds, and provides personalized health insights",
        "talent_needs": ["ML Engineer", "Mobile Developer", "Healthcare PM"],
        "business_model": "B2B2C - Partner with hospitals and insurance companies",
        "team_members": "3 co-founders from top medical AI labs",
    },
    {
        "name": "GreenChain",
        "one_liner": "Blockchain-based carbon credit marketplace for enterprises",
        "sector": "Climate Tech",
        "location": "Shanghai",
        "stage": "Series A",
        "vision": "Accelerate the world's transition to net-zero emissions",
        "problem": "Enterprises lack transparent and trustworthy carbon credit trading",
        "solution": "Decentralized marketplace with verified carbon credits and real-time tracking",
        "talent_needs": ["Blockchain Developer", "Climate Scientist", "BD Manager"],
        "business_model": "Transaction fees + premium verification services",
        "team_members": "Ex-McKinsey, ex-ConsenSys, climate PhDs",
    },
    {
        "name": "SkillSync",
        "one_liner": "AI-powered skill assessment and upskilling platform",
        "sector": "EdTech",
        "location": "Shenzhen",
        "stage": "Pre-seed",
        "vision": "Close the global skills gap through personalized learning paths",
        "problem": "Traditional education doesn't match industry skill requirements",
        "solution": "AI assessments + curated learning content + job matching",
        "talent_needs": ["Full-stack Developer", "Content Designer", "Growth Hacker"],
        "business_model": "Freemium + B2B enterprise training",
        "team_members": "Former Coursera and LinkedIn Learning engineers",
    },
    {
        "name": "RoboFarm",
        "one_liner": "Autonomous farming robots for sustainable agriculture",
        "sector": "AgTech",
        "location": "Chengdu",
        "stage": "Seed",
        "vision": "Feed the world sustainably with AI-powered precision farming",
        "problem": "Labor shortage and environmental impact of traditional farming",
        "solution": "Autonomous robots for planting, monitoring, and harvesting",
        "talent_needs": ["Robotics Engineer", "Computer Vision Expert", "Agriculture Specialist"],
        "business_model": "RaaS (Robots as a Service) - subscription model",
        "team_members": "CMU robotics PhDs and generational farmers",
    },
    {
        "name": "MetaOffice",
        "one_liner": "Immersive virtual workspace for distributed teams",
        "sector": "Enterprise Software",
        "location": "Hangzhou",
        "stage": "Series A",
        "vision": "Make remote work feel like being together",
        "problem": "Remote teams struggle with collaboration and company culture",
        "solution": "VR/AR-powered virtual offices with real-time collaboration",
        "talent_needs": ["Unity Developer", "3D Designer", "Enterprise Sales"],
        "business_model": "SaaS subscription per user",
        "team_members": "Former Meta and Unity engineers",
    },
    {
        "name": "FinFlow",
        "one_liner": "Embedded finance infrastructure for SaaS platforms",
        "sector": "FinTech",
        "location": "Remote",
        "stage": "Seed",
        "vision": "Enable every software company to become a fintech",
        "problem": "SaaS platforms want financial services but lack infrastructure",
        "solution": "API-first banking, payments, and lending infrastructure",
        "talent_needs": ["Backend Engineer", "Compliance Expert", "DevRel"],
        "business_model": "Transaction fees + interest income",
        "team_members": "Ex-Stripe, ex-Plaid, banking veterans",
    },
]

FIRST_NAMES = [
    "Alice", "Ben", "Carlos", "Dana", "Emily", "Frank", "Grace", "Henry",
    "Iris", "Jack", "Kim", "Leo", "Maya", "Noah", "Olivia", "Pablo",
]

TITLES = [
    ("ML Engineer", ["PyTorch", "MLOps", "NLP"]),
    ("Mobile Developer", ["Swift", "Kotlin", "React Native"]),
    ("Backend Engineer", ["Go", "PostgreSQL", "Distributed systems"]),
    ("Growth Marketer", ["SEO", "Paid acquisition", "Analytics"]),
    ("Product Manager", ["Discovery", "Roadmapping", "B2B SaaS"]),
    ("Robotics Engineer", ["ROS", "Motion planning", "Embedded C"]),
    ("Climate Scientist", ["Carbon accounting", "LCA", "Remote sensing"]),
    ("3D Designer", ["Blender", "Unity", "Spatial UX"]),
]

LOCATIONS = ["Beijing", "Shanghai", "Shenzhen", "Hangzhou", "Chengdu", "Remote"]


def generate_talent(count: int = 8) -> list[tuple[User, Profile]]:
    talent = []
    now = datetime.now(timezone.utc)

    for i in range(count):
        name = f"{FIRST_NAMES[i % len(FIRST_NAMES)]} {chr(65 + i % 26)}."
        title, skills = TITLES[i % len(TITLES)]
        user = User(id=str(uuid.uuid4())[:8], name=name)
        profile = Profile(
            user_id=user.id,
            name=name,
            title=title,
            location=random.choice(LOCATIONS),
            skills=skills,
            experience_highlights=f"{random.randint(2, 12)} years as a {title.lower()}",
            looking_for="An early-stage team with a clear problem and room to own a function",
            superpower=f"Ships {skills[0]} work end to end",
            created_at=(now - timedelta(minutes=count - i)).isoformat(),
        )
        talent.append((user, profile))

    return talent


def generate_projects(owner: User) -> list[Project]:
    now = datetime.now(timezone.utc)
    return [
        Project(
            id=str(uuid.uuid4())[:8],
            owner_id=owner.id,
            published=True,
            created_at=(now - timedelta(minutes=len(SAMPLE_PROJECTS) - i)).isoformat(),
            **fields,
        )
        for i, fields in enumerate(SAMPLE_PROJECTS)
    ]


async def seed(talent_count: int = 8, redis_url: str | None = None) -> None:
    r = aioredis.from_url(redis_url or settings.redis_url, decode_responses=True)
    store = StateManager(r)

    founder = User(id="founder-demo", name="Demo Founder")
    await store.save_user(founder)
    print(f"Founder user: {founder.id}")

    print(f"Seeding {talent_count} talent profiles...")
    for user, profile in generate_talent(talent_count):
        await store.save_user(user)
        await store.save_profile(profile)
        print(f"  {user.id}  {profile.name} ({profile.title})")

    print(f"Seeding {len(SAMPLE_PROJECTS)} projects...")
    for project in generate_projects(founder):
        await store.save_project(project)
        print(f"  {project.id}  {project.name}")

    await r.aclose()
    print("Done!")


def main():
    parser = argparse.ArgumentParser(description="Seed demo data into Redis")
    parser.add_argument("--talent", type=int, default=8, help="Number of talent profiles")
    parser.add_argument("--redis-url", default=None, help="Override settings.redis_url")
    args = parser.parse_args()
    asyncio.run(seed(talent_count=args.talent, redis_url=args.redis_url))


if __name__ == "__main__":
    main()
