#!/usr/bin/env python3
"""
Seed the default productivity categories.

    python tools/seed_categories.py           # only when no categories exist
    python tools/seed_categories.py --force   # replace existing categories
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sqlalchemy import delete, func, select

from backend.app.core.db import AsyncSessionLocal, init_db
from backend.app.models import Category, CategoryType

# Setup logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    # Productive
    {
        "name": "Development",
        "type": CategoryType.productive,
        "color": "#4CAF50",
        "domains": ["github.com", "gitlab.com", "bitbucket.org", "stackoverflow.com", "stackexchange.com"],
        "applications": [
            "Visual Studio Code", "Code", "WebStorm", "PyCharm", "IntelliJ IDEA",
            "Sublime Text", "Atom", "Vim", "Emacs",
        ],
    },
    {
        "name": "Documentation",
        "type": CategoryType.productive,
        "color": "#66BB6A",
        "domains": [
            "docs.microsoft.com", "developer.mozilla.org", "docs.python.org", "nodejs.org",
            "reactjs.org", "vuejs.org", "angular.io", "django-project.com",
        ],
        "applications": [],
    },
    {
        "name": "Design & Creative",
        "type": CategoryType.productive,
        "color": "#81C784",
        "domains": ["figma.com", "dribbble.com", "behance.net", "canva.com"],
        "applications": ["Figma", "Adobe Photoshop", "Adobe Illustrator", "Sketch", "GIMP"],
    },
    {
        "name": "Project Management",
        "type": CategoryType.productive,
        "color": "#43A047",
        "domains": ["trello.com", "asana.com", "monday.com", "jira.atlassian.com", "notion.so", "linear.app"],
        "applications": [],
    },
    {
        "name": "Cloud & DevOps",
        "type": CategoryType.productive,
        "color": "#2E7D32",
        "domains": [
            "console.aws.amazon.com", "console.cloud.google.com", "portal.azure.com",
            "heroku.com", "vercel.com", "netlify.com",
        ],
        "applications": ["Docker Desktop", "Terminal", "iTerm", "Windows Terminal", "Postman"],
    },
    {
        "name": "Learning",
        "type": CategoryType.productive,
        "color": "#1B5E20",
        "domains": [
            "udemy.com", "coursera.org", "edx.org", "khanacademy.org",
            "codecademy.com", "freecodecamp.org", "pluralsight.com",
        ],
        "applications": [],
    },
    # Neutral
    {
        "name": "Communication",
        "type": CategoryType.neutral,
        "color": "#9E9E9E",
        "domains": ["gmail.com", "outlook.com", "mail.google.com", "calendar.google.com"],
        "applications": ["Slack", "Microsoft Teams", "Discord", "Zoom", "Skype", "Thunderbird", "Mail"],
    },
    {
        "name": "File Management",
        "type": CategoryType.neutral,
        "color": "#757575",
        "domains": ["drive.google.com", "dropbox.com", "onedrive.live.com"],
        "applications": ["Finder", "File Explorer", "Nautilus", "Dolphin"],
    },
    {
        "name": "System Tools",
        "type": CategoryType.neutral,
        "color": "#616161",
        "domains": [],
        "applications": ["System Preferences", "Settings", "Control Panel", "Activity Monitor", "Task Manager"],
    },
    # Distracting
    {
        "name": "Social Media",
        "type": CategoryType.distracting,
        "color": "#F44336",
        "domains": [
            "facebook.com", "twitter.com", "instagram.com", "tiktok.com",
            "linkedin.com", "snapchat.com", "reddit.com", "pinterest.com",
        ],
        "applications": [],
    },
    {
        "name": "Entertainment",
        "type": CategoryType.distracting,
        "color": "#E53935",
        "domains": [
            "youtube.com", "netflix.com", "hulu.com", "twitch.tv",
            "spotify.com", "soundcloud.com", "vimeo.com",
        ],
        "applications": ["Spotify", "iTunes", "Music", "VLC"],
    },
    {
        "name": "News & Media",
        "type": CategoryType.distracting,
        "color": "#D32F2F",
        "domains": [
            "cnn.com", "bbc.com", "nytimes.com", "theguardian.com",
            "techcrunch.com", "theverge.com", "medium.com",
        ],
        "applications": [],
    },
    {
        "name": "Shopping",
        "type": CategoryType.distracting,
        "color": "#C62828",
        "domains": ["amazon.com", "ebay.com", "aliexpress.com", "walmart.com", "target.com", "etsy.com"],
        "applications": [],
    },
    {
        # twitch.tv is also listed under Entertainment, which wins on first match.
        "name": "Gaming",
        "type": CategoryType.distracting,
        "color": "#B71C1C",
        "domains": ["steampowered.com", "epicgames.com", "ea.com", "twitch.tv"],
        "applications": ["Steam", "Epic Games", "Minecraft", "League of Legends"],
    },
]


async def seed_categories(force: bool = False) -> int:
    """Insert the default categories. Returns how many were created."""
    await init_db()
    async with AsyncSessionLocal() as session:
        existing = await session.scalar(select(func.count()).select_from(Category))
        if existing and not force:
            logger.warning(f"Found {existing} existing categories. Re-run with --force to replace them.")
            return 0
        if existing:
            await session.execute(delete(Category))
            logger.info(f"Deleted {existing} existing categories")

        # Inserted one by one so created_at preserves the listed order for first-match lookup.
        for values in DEFAULT_CATEGORIES:
            session.add(Category(**values))
            await session.flush()
        await session.commit()

    logger.info(f"Created {len(DEFAULT_CATEGORIES)} default categories")
    return len(DEFAULT_CATEGORIES)


def main():
    parser = argparse.ArgumentParser(description="Seed default productivity categories")
    parser.add_argument("--force", action="store_true", help="Delete existing categories first")
    args = parser.parse_args()
    asyncio.run(seed_categories(force=args.force))


if __name__ == "__main__":
    main()
