"""StudyFlow: student task and document management API."""
