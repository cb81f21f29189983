"""Infrastructure adapters: config sources, kubeconfig and bastion tunnel."""
