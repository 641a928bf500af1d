"""Default workspace used when no snapshot exists yet."""

from project_tree.models.node import FOLDER, LEAF, Component, Node, Tree


def seed_tree() -> Tree:
    """Return the starter workspace shown on first launch."""
    nodes = [
        Node("folder-1", "Getting Started", None, FOLDER, children=("project-1", "project-2")),
        Node("folder-2", "My Projects", None, FOLDER, children=("project-3", "folder-3")),
        Node(
            "folder-3", "Active Projects", "folder-2", FOLDER, children=("project-4", "project-5")
        ),
        Node(
            "project-1",
            "Welcome Guide",
            "folder-1",
            LEAF,
            components=(
                Component(
                    "TypeA",
                    {
                        "welcomeMessage": "Welcome to the project system!",
                        "steps": ["Read the guide", "Try creating a project", "Explore components"],
                    },
                ),
            ),
        ),
        Node(
            "project-2",
            "Quick Start Tutorial",
            "folder-1",
            LEAF,
            components=(
                Component(
                    "TypeB",
                    {
                        "tutorial": {
                            "title": "Getting Started",
                            "sections": [
                                "Basic Navigation",
                                "Creating Projects",
                                "Using Components",
                            ],
                        }
                    },
                ),
            ),
        ),
        Node(
            "project-3",
            "Project Ideas",
            "folder-2",
            LEAF,
            components=(
                Component(
                    "TypeA",
                    {
                        "ideas": [
                            "Build a task tracker",
                            "Create a knowledge base",
                            "Design a workflow system",
                        ]
                    },
                ),
            ),
        ),
        Node("project-4", "Current Sprint", "folder-3", LEAF),
        Node("project-5", "Backlog Items", "folder-3", LEAF),
    ]
    return Tree(items={n.id: n for n in nodes}, root_ids=("folder-1", "folder-2"))
