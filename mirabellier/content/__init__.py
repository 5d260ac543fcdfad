"""Posts, videos and pictures with comments and likes."""
