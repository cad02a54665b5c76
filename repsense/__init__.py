"""RepSense: exercise repetition counting from pose landmarks."""
