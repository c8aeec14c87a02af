"""JFrog access token provider job."""
