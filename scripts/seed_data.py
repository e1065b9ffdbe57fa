"""
Catalog seeder — populates interests, courses and series for development.

Usage:
    python scripts/seed_data.py

Creates:
  - 8 interests (the onboarding choices)
  - 16 standalone courses
  - 8 series, each with 2-5 episodes, tagged with interest names

Idempotent: rows are matched by name/title (episodes by series + order)
and updated in place.
"""

import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.database import async_session
from learnpath.models import Course, Episode, Interest, Series

# ---------------------------------------------------------------------------
# Interests
# ---------------------------------------------------------------------------

INTERESTS = [
    "Python Programming",
    "Data Science",
    "UI/UX Design",
    "Digital Marketing",
    "Cloud Computing",
    "Cybersecurity",
    "React Framework",
    "Personal Finance",
]

# ---------------------------------------------------------------------------
# Open sample videos (Creative Commons / public domain)
# ---------------------------------------------------------------------------

_VIDEO_BASE = "https://commondatastorage.googleapis.com/gtv-videos-bucket/sample"
VIDEOS = {
    "big_buck_bunny": f"{_VIDEO_BASE}/BigBuckBunny.mp4",
    "elephants_dream": f"{_VIDEO_BASE}/ElephantsDream.mp4",
    "sintel": f"{_VIDEO_BASE}/Sintel.mp4",
    "tears_of_steel": f"{_VIDEO_BASE}/TearsOfSteel.mp4",
    "blazes": f"{_VIDEO_BASE}/ForBiggerBlazes.mp4",
    "escapes": f"{_VIDEO_BASE}/ForBiggerEscapes.mp4",
    "fun": f"{_VIDEO_BASE}/ForBiggerFun.mp4",
    "joyrides": f"{_VIDEO_BASE}/ForBiggerJoyrides.mp4",
}

# Durations of the long-form sample films, in seconds
_DURATIONS = {
    "big_buck_bunny": 596,
    "elephants_dream": 653,
    "sintel": 888,
    "tears_of_steel": 734,
}


def _thumb(photo_id: str) -> str:
    return f"https://images.unsplash.com/photo-{photo_id}?w=400&h=225&fit=crop"


# ---------------------------------------------------------------------------
# Courses: (title, category, video, thumbnail id, description)
# ---------------------------------------------------------------------------

SAMPLE_COURSES = [
    ("Introduction to Web Development", "Web Development", "big_buck_bunny", "1461749280684-dccba630e2f6",
     "Learn the fundamentals of HTML, CSS, and JavaScript to build modern websites."),
    ("React Fundamentals", "Web Development", "sintel", "1633356122544-f134324a6cee",
     "Master React.js from scratch. Build interactive user interfaces with components."),
    ("TypeScript Essentials", "Web Development", "elephants_dream", "1516116216624-53e697fedbea",
     "Add type safety to your JavaScript projects with TypeScript."),
    ("Node.js Backend Development", "Web Development", "tears_of_steel", "1627398242454-45a1465c2479",
     "Build scalable server-side applications with Node.js and Express."),
    ("Python for Data Science", "Data Science", "big_buck_bunny", "1526374965328-7f61d4dc18c5",
     "Learn Python programming with focus on data analysis and visualization."),
    ("Machine Learning Basics", "Artificial Intelligence", "sintel", "1555949963-aa79dcee981c",
     "Introduction to machine learning algorithms and their applications."),
    ("SQL and Database Design", "Data Science", "elephants_dream", "1544383835-bda2bc66a55d",
     "Master SQL queries and learn to design efficient database schemas."),
    ("React Native Mobile Apps", "Mobile Development", "tears_of_steel", "1512941937669-90a1b58e7e9c",
     "Build cross-platform mobile applications with React Native."),
    ("iOS Development with Swift", "Mobile Development", "big_buck_bunny", "1621839673705-6617adf9e890",
     "Create beautiful iOS applications using Swift and SwiftUI."),
    ("UI/UX Design Fundamentals", "Design", "elephants_dream", "1561070791-2526d30994b5",
     "Learn the principles of user interface and user experience design."),
    ("Figma Masterclass", "Design", "sintel", "1609921212029-bb5a28e60960",
     "Master Figma to create stunning designs and prototypes."),
    ("AWS Cloud Practitioner", "Cloud Computing", "tears_of_steel", "1451187580459-43490279c0fa",
     "Get started with Amazon Web Services cloud platform."),
    ("Docker & Kubernetes", "DevOps", "big_buck_bunny", "1605745341112-85968b19335b",
     "Learn containerization with Docker and orchestration with Kubernetes."),
    ("Digital Marketing Essentials", "Marketing", "elephants_dream", "1460925895917-afdab827c52f",
     "Learn SEO, social media marketing, and content strategy."),
    ("Financial Literacy", "Finance", "sintel", "1611974789855-9c2a0a7236a3",
     "Understand personal finance, investing, and wealth building."),
    ("Public Speaking Mastery", "Communication", "tears_of_steel", "1475721027785-f74eccf877e2",
     "Overcome stage fright and deliver impactful presentations."),
]

# ---------------------------------------------------------------------------
# Series: episodes are (title, video); order follows list position
# ---------------------------------------------------------------------------

EPISODE_DURATION = 15

SAMPLE_SERIES: list[dict] = [
    {
        "title": "React Mastery",
        "thumbnail": _thumb("1633356122544-f134324a6cee"),
        "description": "Master React from components to advanced patterns.",
        "tags": ["React Framework"],
        "category": "Web Development",
        "episodes": [
            ("JSX & Components", "blazes"),
            ("State & Props", "escapes"),
            ("Hooks Deep Dive", "fun"),
            ("Context & Reducers", "joyrides"),
        ],
    },
    {
        "title": "Python for Data Analysis",
        "thumbnail": _thumb("1526379095098-d400fd0bf935"),
        "description": "Learn Python fundamentals with a focus on data analysis libraries.",
        "tags": ["Python Programming", "Data Science"],
        "category": "Data Science",
        "episodes": [
            ("Python Basics", "blazes"),
            ("NumPy Essentials", "escapes"),
            ("Pandas DataFrames", "fun"),
            ("Data Visualization with Matplotlib", "joyrides"),
            ("Real-World Analysis Project", "blazes"),
        ],
    },
    {
        "title": "Data Science Foundations",
        "thumbnail": _thumb("1551288049-bebda4e38f71"),
        "description": "Build a strong foundation in statistics and machine learning concepts.",
        "tags": ["Data Science"],
        "category": "Data Science",
        "episodes": [
            ("Descriptive Statistics", "fun"),
            ("Probability & Distributions", "escapes"),
            ("Hypothesis Testing", "joyrides"),
            ("Regression Models", "blazes"),
        ],
    },
    {
        "title": "Cloud Infrastructure Essentials",
        "thumbnail": _thumb("1544197150-b99a580bb7a8"),
        "description": "Deploy and manage cloud infrastructure with AWS fundamentals.",
        "tags": ["Cloud Computing"],
        "category": "Cloud Computing",
        "episodes": [
            ("Cloud Concepts & AWS Intro", "blazes"),
            ("EC2 & Networking", "escapes"),
            ("S3 & Storage Solutions", "fun"),
            ("IAM & Security", "joyrides"),
        ],
    },
    {
        "title": "Cybersecurity Fundamentals",
        "thumbnail": _thumb("1555949963-ff9fe0c870eb"),
        "description": "Understand threats, vulnerabilities, and defense strategies.",
        "tags": ["Cybersecurity"],
        "category": "Cybersecurity",
        "episodes": [
            ("Threat Landscape", "blazes"),
            ("Network Security", "escapes"),
            ("Encryption & PKI", "fun"),
        ],
    },
    {
        "title": "UI/UX Design Principles",
        "thumbnail": _thumb("1561070791-2526d30994b5"),
        "description": "Design user-centered interfaces with modern UX methodologies.",
        "tags": ["UI/UX Design"],
        "category": "Design",
        "episodes": [
            ("Design Thinking", "joyrides"),
            ("Wireframing & Prototyping", "blazes"),
            ("Color Theory & Typography", "escapes"),
            ("Usability Testing", "fun"),
        ],
    },
    {
        "title": "Digital Marketing Strategy",
        "thumbnail": _thumb("1460925895917-afdab827c52f"),
        "description": "Plan and execute digital campaigns across channels.",
        "tags": ["Digital Marketing"],
        "category": "Marketing",
        "episodes": [
            ("Marketing Fundamentals", "blazes"),
            ("SEO & Content Strategy", "escapes"),
            ("Social Media Marketing", "fun"),
        ],
    },
    {
        "title": "Personal Finance Mastery",
        "thumbnail": _thumb("1554224155-6726b3ff858f"),
        "description": "Take control of your finances with budgeting, investing, and planning.",
        "tags": ["Personal Finance"],
        "category": "Finance",
        "episodes": [
            ("Budgeting Basics", "joyrides"),
            ("Investing Fundamentals", "blazes"),
            ("Retirement Planning", "escapes"),
        ],
    },
]


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------


async def seed_interests(session: AsyncSession) -> int:
    existing = set((await session.execute(select(Interest.name))).scalars().all())
    new = [Interest(name=name) for name in INTERESTS if name not in existing]
    session.add_all(new)
    await session.flush()
    return len(new)


async def seed_courses(session: AsyncSession) -> int:
    new_count = 0
    for title, category, video, photo_id, description in SAMPLE_COURSES:
        fields = {
            "thumbnail": _thumb(photo_id),
            "duration": _DURATIONS[video],
            "category": category,
            "description": description,
            "video_url": VIDEOS[video],
        }
        course = (
            await session.execute(select(Course).where(Course.title == title))
        ).scalar_one_or_none()
        if course is None:
            session.add(Course(title=title, **fields))
            new_count += 1
        else:
            for key, value in fields.items():
                setattr(course, key, value)
    await session.flush()
    return new_count


async def seed_series(session: AsyncSession) -> int:
    new_count = 0
    for data in SAMPLE_SERIES:
        fields = {k: v for k, v in data.items() if k not in ("title", "episodes")}
        series = (
            await session.execute(select(Series).where(Series.title == data["title"]))
        ).scalar_one_or_none()
        if series is None:
            series = Series(title=data["title"], **fields)
            session.add(series)
            await session.flush()
            new_count += 1
        else:
            for key, value in fields.items():
                setattr(series, key, value)

        for order, (title, video) in enumerate(data["episodes"], start=1):
            episode = (
                await session.execute(
                    select(Episode).where(Episode.series_id == series.id, Episode.order == order)
                )
            ).scalar_one_or_none()
            if episode is None:
                session.add(
                    Episode(
                        series_id=series.id,
                        order=order,
                        title=title,
                        duration=EPISODE_DURATION,
                        video_url=VIDEOS[video],
                    )
                )
            else:
                episode.title = title
                episode.duration = EPISODE_DURATION
                episode.video_url = VIDEOS[video]
    await session.flush()
    return new_count


async def seed() -> None:
    """Insert the sample catalog. Safe to run multiple times."""
    async with async_session() as session:
        interests = await seed_interests(session)
        print(f"  Interests: {interests} new, {len(INTERESTS) - interests} existing")

        courses = await seed_courses(session)
        print(f"  Courses: {courses} new, {len(SAMPLE_COURSES) - courses} updated")

        series = await seed_series(session)
        print(f"  Series: {series} new, {len(SAMPLE_SERIES) - series} updated")

        await session.commit()
    print("\n  Seed complete!")


if __name__ == "__main__":
    asyncio.run(seed())
