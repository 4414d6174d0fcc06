pytest_plugins = ["deploy_io.testing.fixtures"]
