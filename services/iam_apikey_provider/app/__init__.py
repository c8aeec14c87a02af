"""IAM user API key provider job."""
