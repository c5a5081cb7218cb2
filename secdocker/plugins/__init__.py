"""Image checking plugins run before a container is created."""