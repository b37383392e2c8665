"""Application services combining the layout, embedding and clipping stages."""
