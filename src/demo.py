"""Sample task trees for trying the app out (`tasktree --demo`)."""
import logging
from typing import List, Optional, Tuple

from models import NewTask
from storage import Storage

logger = logging.getLogger(__name__)

# (title, description, children)
DemoNode = Tuple[str, str, list]

DEMO_TREES: List[DemoNode] = [
    ("E-commerce Website Redesign", "Modernise the storefront and checkout.", [
        ("Frontend Implementation", "Client-side work.", [
            ("Setup React + TypeScript project structure", "Vite, strict TS, lint config.", []),
            ("Implement shopping cart component", "Persist cart in local storage.", []),
            ("User authentication & profile management", "OAuth login, profile page.", []),
        ]),
        ("Backend API Development", "Server-side work.", [
            ("Design database schema for products & users", "", []),
            ("Build REST API endpoints for product catalog", "Pagination and filtering.", []),
        ]),
    ]),
    ("React Native Fitness Tracker", "Mobile app for workout tracking.", [
        ("Setup React Native development environment", "Android SDK, Xcode, Expo.", []),
        ("Implement workout logging screen", "Sets, reps, rest timer.", []),
    ]),
    ("Kubernetes Cluster Migration", "Move services off the old VMs.", [
        ("Setup EKS cluster with Terraform", "", []),
        ("Implement monitoring with Prometheus & Grafana", "Dashboards per service.", []),
    ]),
    ("Personal Development Goals", "", [
        ("Start morning exercise routine", "20 minutes, before coffee.", []),
        ("Read 'Atomic Habits' by James Clear", "", []),
        ("Research investment portfolio strategy", "Index funds vs. bonds.", []),
    ]),
    ("Tech Learning Roadmap", "", [
        ("Learn Rust programming fundamentals", "Ownership, borrowing, lifetimes.", []),
        ("Study for AWS Solutions Architect certification", "", []),
    ]),
]

DEMO_COMPLETED = ("Setup React + TypeScript project structure", "Design database schema for products & users",
                  "Read 'Atomic Habits' by James Clear")


def populate(store: Storage, trees: List[DemoNode] = DEMO_TREES) -> List[int]:
    """Create the demo trees in store; return the ids created, in order."""
    created: List[int] = []

    def add(node: DemoNode, parent_id: Optional[int]) -> None:
        title, description, children = node
        tid = store.create(NewTask(title=title, description=description, parent_id=parent_id))
        created.append(tid)
        if title in DEMO_COMPLETED:
            store.set_completed(tid, True)
        for child in children:
            add(child, tid)

    for root in trees:
        add(root, None)
    logger.info("demo data: created %d tasks in %s", len(created), store.path)
    return created
