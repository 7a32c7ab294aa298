from searxstack.core.deploy.deployer import DeployResult, Deployer
from searxstack.core.deploy.git import CommitInfo, GitClient, GitSyncResult

__all__ = ["CommitInfo", "DeployResult", "Deployer", "GitClient", "GitSyncResult"]
