"""Built-in sample articles for demos and smoke tests."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import List

from news_rag.models import Document


def sample_articles(now: datetime | None = None) -> List[Document]:
    """Three short news articles with fresh ids, published today, yesterday and two days ago."""
    now = now or datetime.now(timezone.utc)
    return [
        Document(
            id=str(uuid.uuid4()),
            title="Artificial Intelligence Breakthrough in Healthcare",
            content=(
                "Researchers have developed a new AI system that can diagnose diseases with 95% accuracy. "
                "The system uses advanced machine learning algorithms to analyze medical images and patient "
                "data. This breakthrough could revolutionize healthcare by providing faster and more accurate "
                "diagnoses. The AI system has been tested on thousands of cases and shows promising results "
                "across various medical conditions."
            ),
            url="https://example.com/ai-healthcare-breakthrough",
            publishedAt=now,
            source="Tech News Daily",
            summary=(
                "New AI system achieves 95% accuracy in disease diagnosis, potentially revolutionizing "
                "healthcare with faster and more accurate medical analysis."
            ),
        ),
        Document(
            id=str(uuid.uuid4()),
            title="Climate Change Summit Reaches Historic Agreement",
            content=(
                "World leaders have reached a historic agreement at the latest climate summit to reduce global "
                "carbon emissions by 50% within the next decade. The agreement includes commitments from major "
                "economies to invest in renewable energy and phase out fossil fuels. Environmental groups have "
                "praised the deal as a significant step forward in combating climate change. The implementation "
                "will require unprecedented international cooperation and technological innovation."
            ),
            url="https://example.com/climate-summit-agreement",
            publishedAt=now - timedelta(days=1),
            source="Global News Network",
            summary=(
                "World leaders agree to reduce global carbon emissions by 50% in the next decade through "
                "renewable energy investments and fossil fuel phase-out."
            ),
        ),
        Document(
            id=str(uuid.uuid4()),
            title="Space Exploration Mission Discovers Water on Mars",
            content=(
                "NASA's latest Mars rover has discovered significant water deposits beneath the planet's "
                "surface. The discovery was made using advanced ground-penetrating radar technology. Scientists "
                "believe this water could support future human missions to Mars and potentially indicate past "
                "or present microbial life. The water appears to be in the form of ice and is located at depths "
                "accessible by future drilling missions."
            ),
            url="https://example.com/mars-water-discovery",
            publishedAt=now - timedelta(days=2),
            source="Space Science Today",
            summary=(
                "NASA rover discovers significant water deposits beneath Mars surface, potentially supporting "
                "future human missions and indicating possible microbial life."
            ),
        ),
    ]
