#!/usr/bin/env python3
"""InnoGames Monitoring Plugins - Hadoop MapReduce Nodes Active Check

Checks that the given nodes are in the active machines list of the
JobTracker.  This is the node list mode of check_hadoop_jobtracker with the
node list being mandatory.

Example:
    ./check_hadoop_mapreduce_nodes_active.py -H jobtracker -n node1,node2

Copyright (c) 2024 InnoGames GmbH
"""
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in
# all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT.  IN NO EVENT SHALL
# THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN
# THE SOFTWARE.

from hadoopmonplugins import check_hadoop_jobtracker


def main(argv=None):
    """Main entry point"""
    check_hadoop_jobtracker.main(argv, require_nodes=True)


if __name__ == '__main__':
    main()
