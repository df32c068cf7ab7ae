"""foldermirror - Mirror a local folder onto an FTP site as it changes."""
