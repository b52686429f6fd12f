# Marks `worklog.deps` as a regular package so `from worklog.deps.auth import get_platform`
# resolves the same way in the app and in tests.
