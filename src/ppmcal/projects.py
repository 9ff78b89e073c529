"""Project directory backed by the projects collection."""

import logging
from datetime import datetime
from typing import Optional

from .models.project import Project, ProjectStatus
from .store import DocumentStore

logger = logging.getLogger(__name__)


class ProjectDirectory:
    """Point lookups and simple CRUD over projects."""

    def __init__(self, store: DocumentStore, collection: str = "projectsPPM"):
        self.store = store
        self.collection = collection

    def add_project(
        self,
        name: str,
        description: str = "",
        status: ProjectStatus = ProjectStatus.PLANNING,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        manager_name: str = "N/A",
    ) -> Project:
        if len(name.strip()) < 3:
            raise ValueError("Project name must be at least 3 characters.")
        draft = Project(
            id="",
            name=name.strip(),
            description=description,
            status=status,
            start_date=start_date,
            end_date=end_date,
            manager_name=manager_name,
        )
        doc_id = self.store.add(self.collection, draft.to_document())
        return draft.model_copy(update={"id": doc_id})

    def get(self, project_id: str) -> Optional[Project]:
        doc = self.store.get(self.collection, project_id)
        if doc is None:
            return None
        return Project.from_document(doc.id, doc.data)

    def lookup_name(self, project_id: str) -> Optional[str]:
        """Display name of a project, or None when it does not exist.

        Raises:
            StoreError: If the lookup itself fails
        """
        project = self.get(project_id)
        return project.name if project is not None else None

    def list_projects(self) -> list[Project]:
        projects = []
        for doc in self.store.query(self.collection, order_by="name"):
            try:
                projects.append(Project.from_document(doc.id, doc.data))
            except ValueError as e:
                logger.warning("Skipping malformed project %s: %s", doc.id, e)
        return projects
